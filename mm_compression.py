#!/usr/bin/env python3
"""LZSS decompression for Magic & Mayhem containers.

Token format, read MSB first:
  1 + 8 bits            literal byte
  0 + 12 bits + 4 bits  copy (length + 2) bytes starting at window offset

The window is 4096 bytes, zero-filled, with the write position starting at 1.
Copied bytes are written back into the window as they are read, so a copy may
overlap the bytes it produces.
"""

import logging

import bitstring

from mm_constants import *
from mm_utils import BytesLike, LimitedReader, PrematureEnd

logger = logging.getLogger(__name__)

# A literal is the shortest token; anything shorter at the end is padding
MIN_TOKEN_BITS = 1 + 8


class CompressedReader:
    """Streaming LZSS decoder with a binary reader interface.

    A copy that does not fit into one read() is resumed by the next call.
    Payloads carry no end marker, so wrap the reader with decompress_stream()
    to stop at the declared unpacked size.
    """

    def __init__(self, source: BytesLike):
        self._bits = bitstring.ConstBitStream(bytes=bytes(source))
        self.window = bytearray(WINDOW_SIZE)
        self.window_pointer = WINDOW_START
        self.output_pointer = 0
        self.output_size = 0
        self.bytes_outputted = 0

    @property
    def bits_remaining(self) -> int:
        return self._bits.len - self._bits.pos

    def _read(self, fmt: str):
        pos = self._bits.pos
        try:
            return self._bits.read(fmt)
        except bitstring.ReadError as e:
            raise PrematureEnd(
                f"reading {fmt} at bit offset {pos}, {self._bits.len - pos} bits left"
            ) from e

    def _write_to_window(self, value: int) -> None:
        self.window[self.window_pointer] = value
        self.window_pointer = (self.window_pointer + 1) % WINDOW_SIZE

    def _flush_output(self, out: bytearray, count: int) -> None:
        while self.output_size > 0 and count > 0:
            value = self.window[self.output_pointer]
            out.append(value)
            self._write_to_window(value)

            self.output_pointer = (self.output_pointer + 1) % WINDOW_SIZE
            self.output_size -= 1
            count -= 1

    def read(self, size: int = -1) -> bytes:
        """Decode up to size bytes.

        With a negative size, decoding runs until fewer bits are left than
        the shortest token, so trailing padding is skipped. A bounded read
        decodes every token it needs and fails if the stream runs dry.

        Raises:
            PrematureEnd: If the bitstream ends inside a token
        """
        out = bytearray()

        while size < 0 or len(out) < size:
            if self.output_size > 0:
                wanted = self.output_size if size < 0 else size - len(out)
                self._flush_output(out, wanted)
                continue

            remaining = self.bits_remaining
            if remaining == 0 or (size < 0 and remaining < MIN_TOKEN_BITS):
                break

            if self._read("bool"):
                value = self._read("uint:8")
                self._write_to_window(value)
                out.append(value)
            else:
                self.output_pointer = self._read(f"uint:{OFFSET_BITS}")
                self.output_size = self._read(f"uint:{LENGTH_BITS}") + MIN_MATCH

        self.bytes_outputted += len(out)
        return bytes(out)


def decompress_stream(source: BytesLike, unpacked_size: int) -> LimitedReader:
    """Open an LZSS stream that ends after unpacked_size bytes."""
    return LimitedReader(CompressedReader(source), unpacked_size)


def decompress_lzss(source: BytesLike, unpacked_size: int) -> bytes:
    """Decompress an LZSS payload.

    Args:
        source: Compressed bitstream (payload after the header)
        unpacked_size: Number of bytes to produce

    Returns:
        Decompressed data, at most unpacked_size bytes

    Raises:
        PrematureEnd: If the bitstream ends inside a token
    """
    data = decompress_stream(source, unpacked_size).read()
    logger.debug("LZSS: %d compressed -> %d bytes", len(source), len(data))
    return data
