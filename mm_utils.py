#!/usr/bin/env python3
"""Utility functions and types for Magic & Mayhem container decoding."""

import enum
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple, Union

from mm_constants import *

BytesLike = Union[bytes, bytearray, memoryview]


class MMError(Exception):
    """Base exception for Magic & Mayhem container operations."""

    pass


class MMFileError(MMError):
    """Exception for file-related errors."""

    pass


class DecompressError(MMError):
    """Base exception for container format errors."""

    message = "decompression failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class ContentTooSmall(DecompressError):
    message = "file contents are too small"


class ObfuscateFileTooSmall(DecompressError):
    message = "input should be at least 4 bytes"


InputTooSmall = ObfuscateFileTooSmall


class DeobfuscateChecksumNotMatch(DecompressError):
    message = "deobfuscation checksum does not match"


class DecompressChecksumNonMatch(DecompressError):
    message = "decompression checksum does not match"


class CompressionNotSupported(DecompressError):
    message = "compression not supported"


class InvalidCompressionType(DecompressError):
    message = "invalid compression type"


class PrematureEnd(DecompressError):
    """Raised when the input runs out before the declared data was read."""

    message = "premature end of file"

    def __init__(self, context: Optional[str] = None):
        self.context = context
        if context is None:
            super().__init__()
        else:
            super().__init__(f"premature end of file when lz unpacking ({context})")


class CompressionType(enum.Enum):
    UNCOMPRESSED = COMPRESSION_UNCOMPRESSED
    RLE = COMPRESSION_RLE
    LZSS = COMPRESSION_LZSS
    UNKNOWN = -1

    @classmethod
    def from_code(cls, code: int) -> "CompressionType":
        """Map a raw header code to a compression type, UNKNOWN if unrecognized."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Header:
    """Fixed 16-byte header at the start of the deobfuscated buffer."""

    unpacked_size: int
    checksum_deobfuscated: int
    checksum_uncompressed: int
    compression_code: int

    @property
    def compression(self) -> CompressionType:
        return CompressionType.from_code(self.compression_code)

    @classmethod
    def from_bytes(cls, data: BytesLike) -> "Header":
        """Parse a header from the first 16 bytes of data.

        Args:
            data: Deobfuscated buffer

        Returns:
            Parsed Header

        Raises:
            PrematureEnd: If fewer than 16 bytes are available
        """
        if len(data) < HEADER_SIZE:
            raise PrematureEnd()

        return cls(*struct.unpack_from("<IIII", data, 0))


def read_header(file_handle: BinaryIO) -> Header:
    """Read a header from an open file handle positioned at the header.

    Args:
        file_handle: Open file handle in binary read mode

    Returns:
        Parsed Header

    Raises:
        PrematureEnd: If the handle holds fewer than 16 bytes
    """
    return Header.from_bytes(file_handle.read(HEADER_SIZE))


def checksum(data: BytesLike) -> int:
    """Fold data into the container checksum.

    Complete little-endian words are alternately XORed and added into the
    sum, starting with XOR. A trailing partial word is ignored.

    Args:
        data: Bytes to checksum

    Returns:
        32-bit checksum value
    """
    complete_chunks, _ = process_chunks(data)
    total = 0
    odd = False
    for (word,) in struct.iter_unpack("<I", data[: complete_chunks * CHUNK_SIZE]):
        if odd:
            total = (total + word) & U32_MASK
        else:
            total ^= word
        odd = not odd
    return total


class ChecksummingReader:
    """Wraps a binary reader and checksums everything read through it."""

    def __init__(self, reader):
        self.reader = reader
        self._checksum = 0
        self._odd = False
        self._current_word = 0
        self._current_word_fill = 0

    @property
    def checksum(self) -> int:
        return self._checksum

    def read(self, size: int = -1) -> bytes:
        data = self.reader.read(size)
        for byte in data:
            self._current_word |= byte << (8 * self._current_word_fill)
            self._current_word_fill += 1
            if self._current_word_fill == CHUNK_SIZE:
                if self._odd:
                    self._checksum = (self._checksum + self._current_word) & U32_MASK
                else:
                    self._checksum ^= self._current_word
                self._current_word = 0
                self._current_word_fill = 0
                self._odd = not self._odd
        return data


def format_bytes_readable(data: bytes, max_len: int = 16) -> str:
    """Format bytes as readable string.

    Args:
        data: Bytes to format
        max_len: Maximum length to display

    Returns:
        String with printable characters or dots for non-printable
    """
    return "".join(chr(b) if 32 <= b <= 126 else "." for b in data[:max_len])


def validate_file_path(path: str, must_exist: bool = True) -> str:
    """Validate file path.

    Args:
        path: File path to validate
        must_exist: Whether file must exist

    Returns:
        Absolute path

    Raises:
        MMFileError: If path is invalid
    """
    if must_exist and not os.path.isfile(path):
        raise MMFileError(f"File not found: {path}")

    return os.path.abspath(path)


def process_chunks(data: BytesLike, chunk_size: int = CHUNK_SIZE) -> Tuple[int, int]:
    """Calculate chunk counts for data.

    Args:
        data: Data to process
        chunk_size: Size of each chunk

    Returns:
        Tuple of (complete_chunks, remaining_bytes)
    """
    return divmod(len(data), chunk_size)


class LimitedReader:
    """Wraps a binary reader and stops after limit bytes."""

    def __init__(self, reader, limit: int):
        self.reader = reader
        self.remaining = limit

    def read(self, size: int = -1) -> bytes:
        if size < 0 or size > self.remaining:
            size = self.remaining
        if size == 0:
            return b""

        data = self.reader.read(size)
        self.remaining -= len(data)
        return data
