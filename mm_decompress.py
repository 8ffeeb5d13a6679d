#!/usr/bin/env python3
"""Magic & Mayhem container decompression tool.

Deobfuscates and unpacks compressed game files (maps, sprites, ...).
"""

import logging
import sys
from typing import Optional

from mm_compression import decompress_stream
from mm_constants import *
from mm_crypto import deobfuscate
from mm_utils import (
    BytesLike,
    ChecksummingReader,
    CompressionNotSupported,
    CompressionType,
    ContentTooSmall,
    DecompressChecksumNonMatch,
    DeobfuscateChecksumNotMatch,
    Header,
    InvalidCompressionType,
    MMError,
    MMFileError,
    PrematureEnd,
    checksum,
    format_bytes_readable,
    validate_file_path,
)

logger = logging.getLogger(__name__)


def deobfuscate_checked(data: BytesLike) -> bytes:
    """Deobfuscate a container and verify the payload checksum.

    Returns:
        Deobfuscated buffer, header included

    Raises:
        DeobfuscateChecksumNotMatch: If the payload checksum is wrong
    """
    deobfuscated = deobfuscate(data)
    header = Header.from_bytes(deobfuscated)

    actual = checksum(deobfuscated[OFFSET_PAYLOAD:])
    if header.checksum_deobfuscated != actual:
        logger.debug(
            "Deobfuscated checksum 0x%08X, header says 0x%08X",
            actual,
            header.checksum_deobfuscated,
        )
        raise DeobfuscateChecksumNotMatch()

    return deobfuscated


def lzss_decompress(data: bytes) -> bytes:
    """Unpack the LZSS payload of a deobfuscated buffer and verify it.

    Raises:
        PrematureEnd: If the payload runs out before unpacked_size bytes
        DecompressChecksumNonMatch: If the output checksum is wrong
    """
    header = Header.from_bytes(data)

    reader = ChecksummingReader(
        decompress_stream(data[OFFSET_PAYLOAD:], header.unpacked_size)
    )
    buffer = reader.read()

    if len(buffer) != header.unpacked_size:
        raise PrematureEnd(
            f"{len(buffer)} of {header.unpacked_size} bytes before end of stream"
        )

    if header.checksum_uncompressed != reader.checksum:
        logger.debug(
            "Decompressed checksum 0x%08X, header says 0x%08X",
            reader.checksum,
            header.checksum_uncompressed,
        )
        raise DecompressChecksumNonMatch()

    return buffer


def decompress(data: BytesLike) -> bytes:
    """Decode a container into its plaintext contents.

    Args:
        data: Raw container bytes

    Returns:
        Decoded data

    Raises:
        DecompressError: If the container is malformed or unsupported
    """
    if len(data) <= CONTAINER_PREFIX_SIZE:
        raise ContentTooSmall()

    output = deobfuscate_checked(data)
    header = Header.from_bytes(output)
    logger.debug("Header: %s (%s)", header, header.compression.name)

    compression = header.compression
    if compression is CompressionType.UNCOMPRESSED:
        return output[OFFSET_PAYLOAD:]
    if compression is CompressionType.LZSS:
        return lzss_decompress(output)
    if compression is CompressionType.RLE:
        raise CompressionNotSupported()
    raise InvalidCompressionType(
        f"invalid compression type: {header.compression_code}"
    )


def read_decompressed(path: str) -> bytes:
    """Read and decode a container file.

    Raises:
        MMFileError: If the file cannot be read
        DecompressError: If the container is malformed or unsupported
    """
    input_path = validate_file_path(path)

    try:
        with open(input_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise MMFileError(f"file reading error: {e}") from e

    return decompress(data)


def write_decompressed(input_file: str, output_file: Optional[str] = None) -> bytes:
    """Decode a container file to output_file, or to stdout if not given.

    Returns:
        Decoded data as bytes

    Raises:
        MMError: If decoding or writing fails
    """
    input_path = validate_file_path(input_file)
    decoded = read_decompressed(input_path)

    if output_file is None:
        sys.stdout.buffer.write(decoded)
        sys.stdout.buffer.flush()
        return decoded

    try:
        with open(output_file, "wb") as f:
            f.write(decoded)
    except OSError as e:
        raise MMFileError(f"file writing error: {e}") from e

    print(f"Input:  {input_path}", file=sys.stderr)
    print(f"Output: {output_file}", file=sys.stderr)
    print(f"Decoded {len(decoded)} bytes: '{format_bytes_readable(decoded)}'", file=sys.stderr)

    return decoded


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: mm-decompress <input_file> [output_file]")
        print("Example: mm-decompress CFsec50.map")
        print("Example: mm-decompress CFsec50.map CFsec50.raw")
        sys.exit(1)

    input_file = sys.argv[1]
    output_file = sys.argv[2] if len(sys.argv) > 2 else None

    try:
        write_decompressed(input_file, output_file)
    except MMError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
