import io
import struct

import pytest

from mm_utils import (
    ChecksummingReader,
    CompressionType,
    Header,
    LimitedReader,
    MMFileError,
    PrematureEnd,
    checksum,
    process_chunks,
    read_header,
    validate_file_path,
)


def words(*values):
    return struct.pack(f"<{len(values)}I", *values)


@pytest.mark.parametrize("data", [b"", b"\x01", b"\x01\x02", b"\xff\xff\xff"])
def test_checksum_short_input_is_zero(data):
    assert checksum(data) == 0


def test_checksum_alternates_xor_and_add():
    assert checksum(words(1)) == 1
    assert checksum(words(1, 1)) == 2
    assert checksum(words(1, 1, 1)) == 3
    assert checksum(words(1, 1, 1, 1)) == 4


def test_checksum_depends_on_word_order():
    assert checksum(words(1, 2, 3)) == 0
    assert checksum(words(3, 2, 1)) == 4


def test_checksum_wraps():
    assert checksum(words(0xFFFFFFFF, 1)) == 0
    assert checksum(words(0x80000000, 0x80000000, 0x00000001)) == 1


def test_checksum_ignores_trailing_bytes():
    assert checksum(words(0x11223344) + b"\xaa\xbb\xcc") == 0x11223344


def test_checksumming_reader_matches_checksum():
    data = bytes((i * 7) & 0xFF for i in range(103))
    reader = ChecksummingReader(io.BytesIO(data))
    pieces = []
    for size in (1, 2, 3, 5, 7, 11, 13, 17, 19, 100):
        pieces.append(reader.read(size))
    assert b"".join(pieces) == data
    assert reader.checksum == checksum(data)


def test_checksumming_reader_read_all():
    data = words(5, 6, 7) + b"\x01"
    reader = ChecksummingReader(io.BytesIO(data))
    assert reader.read() == data
    assert reader.checksum == checksum(data)


def test_limited_reader_stops_at_limit():
    reader = LimitedReader(io.BytesIO(b"abcdefgh"), 5)
    assert reader.read(3) == b"abc"
    assert reader.read() == b"de"
    assert reader.read() == b""
    assert reader.remaining == 0


def test_header_from_bytes():
    header = Header.from_bytes(words(100, 0xAABBCCDD, 0x11223344, 2) + b"rest")
    assert header.unpacked_size == 100
    assert header.checksum_deobfuscated == 0xAABBCCDD
    assert header.checksum_uncompressed == 0x11223344
    assert header.compression is CompressionType.LZSS


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, CompressionType.UNCOMPRESSED),
        (1, CompressionType.RLE),
        (2, CompressionType.LZSS),
        (3, CompressionType.UNKNOWN),
        (0xFFFFFFFF, CompressionType.UNKNOWN),
    ],
)
def test_header_compression_codes(code, expected):
    header = Header.from_bytes(words(0, 0, 0, code))
    assert header.compression is expected
    assert header.compression_code == code


def test_header_too_short():
    with pytest.raises(PrematureEnd) as excinfo:
        Header.from_bytes(b"\x00" * 15)
    assert excinfo.value.context is None
    assert str(excinfo.value) == "premature end of file"


def test_read_header_from_file():
    handle = io.BytesIO(words(1, 2, 3, 0) + b"payload")
    assert read_header(handle) == Header(1, 2, 3, 0)
    assert handle.read() == b"payload"


def test_process_chunks():
    assert process_chunks(b"") == (0, 0)
    assert process_chunks(b"abcdefg") == (1, 3)
    assert process_chunks(b"abcdefgh") == (2, 0)


def test_validate_file_path(tmp_path):
    path = tmp_path / "file.bin"
    with pytest.raises(MMFileError):
        validate_file_path(str(path))
    path.write_bytes(b"x")
    assert validate_file_path(str(path)) == str(path)
