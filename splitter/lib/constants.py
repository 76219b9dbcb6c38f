"""Shared limits and defaults for the splitter.

Configured values below the minimums are raised to them, never rejected.
"""

from __future__ import annotations

__all__ = [
    "MIN_CHUNK_SIZE_LIMIT",
    "MIN_VALUE_MAX_SCAN_SIZE",
    "DEFAULT_START_CHUNK_SN",
    "READ_BLOCK_SIZE",
    "RATE_LIMIT_BURST_DIVISOR",
]

MIN_CHUNK_SIZE_LIMIT = 16
MIN_VALUE_MAX_SCAN_SIZE = 4096

DEFAULT_START_CHUNK_SN = 0

# Upper bound for a single read from the underlying stream
READ_BLOCK_SIZE = 64 * 1024

# Burst capacity of the rate-limited scanner is rate / 10 (at least 1)
RATE_LIMIT_BURST_DIVISOR = 10
