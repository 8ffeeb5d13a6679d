#!/usr/bin/env python3
"""Constants for the Magic & Mayhem container format."""

# Container layout
SEED_SIZE = 4
HEADER_SIZE = 16  # unpacked_size + 2 checksums + compression code
CONTAINER_PREFIX_SIZE = SEED_SIZE + HEADER_SIZE
CHUNK_SIZE = 4

# Header offsets (relative to the deobfuscated buffer)
OFFSET_UNPACKED_SIZE = 0
OFFSET_CHECKSUM_DEOBFUSCATED = 4
OFFSET_CHECKSUM_UNCOMPRESSED = 8
OFFSET_COMPRESSION = 12
OFFSET_PAYLOAD = HEADER_SIZE

# Compression codes
COMPRESSION_UNCOMPRESSED = 0
COMPRESSION_RLE = 1
COMPRESSION_LZSS = 2

# PRNG parameters
PRNG_TABLE_SIZE = 250
PRNG_LAG = 103
PRNG_MULTIPLIER = 0x41C64E6D
PRNG_INCREMENT = 0xFFFF00003039
PRNG_FIXUP_START = 3
PRNG_FIXUP_STEP = 7

# LZSS window
WINDOW_SIZE = 0x1000
WINDOW_START = 1
OFFSET_BITS = 12
LENGTH_BITS = 4
MIN_MATCH = 2

U32_MASK = 0xFFFFFFFF
U64_MASK = 0xFFFFFFFFFFFFFFFF
