import struct

import pytest

from mm_crypto import obfuscate
from mm_utils import checksum


def encode_tokens(tokens) -> bytes:
    """Pack LZSS tokens into an MSB-first bitstream, zero padded.

    Tokens are ("lit", byte) or ("copy", offset, length).
    """
    bits = []
    for token in tokens:
        if token[0] == "lit":
            bits.append("1" + format(token[1], "08b"))
        else:
            _, offset, length = token
            bits.append("0" + format(offset, "012b") + format(length - 2, "04b"))
    stream = "".join(bits)
    stream += "0" * (-len(stream) % 8)
    return bytes(int(stream[i : i + 8], 2) for i in range(0, len(stream), 8))


def build_container(
    seed, payload, compression_code=0, unpacked_size=None, checksum_uncompressed=0
) -> bytes:
    if unpacked_size is None:
        unpacked_size = len(payload)
    header = struct.pack(
        "<IIII", unpacked_size, checksum(payload), checksum_uncompressed, compression_code
    )
    return struct.pack("<I", seed) + obfuscate(seed, header + payload)


@pytest.fixture
def lzss_tokens():
    return encode_tokens


@pytest.fixture
def container():
    return build_container
