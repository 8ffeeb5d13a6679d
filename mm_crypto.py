#!/usr/bin/env python3
"""Core obfuscation functions for Magic & Mayhem containers.

Based on mmdecrypt.c from the SAU (Sprite and Archive Utility) project.
"""

import logging
import struct
from typing import Iterator, Tuple

from mm_constants import *
from mm_utils import BytesLike, ObfuscateFileTooSmall, process_chunks

logger = logging.getLogger(__name__)


def seed_iterate(seed: int) -> Tuple[int, int]:
    """Advance the table seed by one step.

    The high half of the 64-bit product is shifted left by 16 inside its own
    32 bits before the increment is added, so the arithmetic is not a plain
    LCG step.

    Args:
        seed: Current 32-bit seed

    Returns:
        Tuple of (new_seed, table_word)
    """
    t = (PRNG_MULTIPLIER * (seed & U32_MASK)) & U64_MASK

    t_hi = ((t >> 32) << 16) & U32_MASK
    t_lo = t & U32_MASK

    t = (((t_hi << 32) | t_lo) + PRNG_INCREMENT) & U64_MASK

    new_seed = t & U32_MASK
    word = ((t >> 32) & 0xFFFF0000) | ((t & U32_MASK) >> 16)
    return new_seed, word


class MMPRNG:
    """Lagged XOR generator keyed by a 32-bit seed."""

    def __init__(self, seed: int):
        """Initialize PRNG with seed.

        Args:
            seed: 32-bit seed read from the container
        """
        self._table = self._table_from_seed(seed & U32_MASK)
        self.i = 0
        self.j = PRNG_LAG

    @staticmethod
    def _table_from_seed(seed: int) -> list:
        table = [0] * PRNG_TABLE_SIZE

        # Filled back to front
        for idx in range(PRNG_TABLE_SIZE - 1, -1, -1):
            seed, table[idx] = seed_iterate(seed)

        mask = U32_MASK
        bit = 0x80000000
        idx = PRNG_FIXUP_START
        while bit:
            table[idx] = bit | (table[idx] & mask)
            idx += PRNG_FIXUP_STEP
            bit >>= 1
            mask >>= 1

        return table

    @property
    def table(self) -> Tuple[int, ...]:
        return tuple(self._table)

    def next_word(self) -> int:
        """Generate the next 32-bit word.

        Returns:
            32-bit key value
        """
        value = self._table[self.i] ^ self._table[self.j]
        self._table[self.i] = value

        self.i = (self.i + 1) % PRNG_TABLE_SIZE
        self.j = (self.j + 1) % PRNG_TABLE_SIZE

        return value

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        return self.next_word()


def obfuscate(seed: int, payload: BytesLike) -> bytes:
    """XOR payload against the PRNG stream for seed.

    Obfuscation and deobfuscation are the same operation.

    Args:
        seed: 32-bit PRNG seed
        payload: Data following the seed in the container

    Returns:
        Transformed data, same length as payload
    """
    prng = MMPRNG(seed)
    complete_chunks, remaining_bytes = process_chunks(payload)
    split = complete_chunks * CHUNK_SIZE

    result = bytearray()

    for (word,) in struct.iter_unpack("<I", payload[:split]):
        result.extend(struct.pack("<I", word ^ prng.next_word()))

    # One full word is consumed per trailing byte
    for byte in payload[split:]:
        result.append(byte ^ (prng.next_word() & 0xFF))

    return bytes(result)


def deobfuscate(data: BytesLike) -> bytes:
    """Strip the leading seed and deobfuscate the rest.

    Args:
        data: Raw container bytes

    Returns:
        Deobfuscated data, 4 bytes shorter than the input

    Raises:
        ObfuscateFileTooSmall: If the seed cannot be read
    """
    if len(data) < SEED_SIZE:
        raise ObfuscateFileTooSmall()

    (seed,) = struct.unpack_from("<I", data, 0)
    logger.debug("PRNG seed: 0x%08X, payload %d bytes", seed, len(data) - SEED_SIZE)

    return obfuscate(seed, data[SEED_SIZE:])


def process(data: BytesLike) -> bytes:
    """Obfuscate or deobfuscate data, keeping its seed prefix.

    Applying this twice returns the original data.

    Raises:
        ObfuscateFileTooSmall: If the seed cannot be read
    """
    return bytes(data[:SEED_SIZE]) + deobfuscate(data)
