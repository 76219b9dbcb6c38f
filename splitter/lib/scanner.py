"""Delimiter scanning over a sequential byte stream.

``ValueScanner`` pulls bytes one at a time from a blocking binary stream
and returns the next delimiter-terminated value. ``RateLimitedScanner``
keeps the same contract but waits on a token bucket before every byte.

Example:
    scanner = ValueScanner(io.BytesIO(b"a,b,c"), b",")
    scanner.next()  # (b"a", ScanStatus.OK)
    scanner.next()  # (b"b", ScanStatus.OK)
    scanner.next()  # (b"c", ScanStatus.END_OF_STREAM)
    scanner.next()  # (b"", ScanStatus.END_OF_STREAM)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import BinaryIO, Iterator, Optional, Tuple

from splitter.lib.constants import MIN_VALUE_MAX_SCAN_SIZE, READ_BLOCK_SIZE
from splitter.lib.errors import ConfigurationError, RateLimitError, ScanLimitExceededError
from splitter.lib.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

__all__ = [
    "ScanStatus",
    "ValueScanner",
    "RateLimitedScanner",
    "build_scanner",
]


class ScanStatus(Enum):
    """Outcome of a successful ``ValueScanner.next()`` call."""

    OK = "ok"
    END_OF_STREAM = "end_of_stream"


class ValueScanner:
    """Reads delimiter-separated values from a binary stream.

    The stream is read in blocks (``read1`` when available, so pipes and
    sockets return as soon as data arrives) and consumed byte by byte.
    ``bytes_scanned`` counts only bytes actually consumed, not bytes that
    are buffered but not yet examined.

    Returned values are fresh ``bytes`` objects; callers may keep them.
    """

    def __init__(
        self,
        stream: BinaryIO,
        delimiter: bytes,
        value_max_scan_size: int = MIN_VALUE_MAX_SCAN_SIZE,
    ) -> None:
        if not delimiter:
            raise ConfigurationError(
                "delimiter must not be empty",
                field="delimiter",
                value=delimiter,
            )
        self.delimiter = bytes(delimiter)
        self.value_max_scan_size = max(value_max_scan_size, MIN_VALUE_MAX_SCAN_SIZE)

        self._stream = stream
        self._read = getattr(stream, "read1", None) or stream.read
        self._block = b""
        self._pos = 0
        self._scratch = bytearray()
        self._bytes_scanned = 0
        self._eof = False

    @property
    def bytes_scanned(self) -> int:
        """Total raw bytes consumed from the stream so far."""
        return self._bytes_scanned

    @property
    def at_eof(self) -> bool:
        return self._eof

    def _fill(self) -> bool:
        block = self._read(READ_BLOCK_SIZE)
        if not block:
            return False
        self._block = block
        self._pos = 0
        return True

    def _read_byte(self) -> Optional[int]:
        """Consume one byte, or return None at end of stream."""
        if self._pos >= len(self._block) and not self._fill():
            return None
        b = self._block[self._pos]
        self._pos += 1
        self._bytes_scanned += 1
        return b

    def next(self) -> Tuple[bytes, ScanStatus]:
        """Return the next value and its status.

        Returns:
            ``(value, ScanStatus.OK)`` when a delimiter terminated the value
            (the delimiter is not included), or ``(value, END_OF_STREAM)``
            with whatever was read before the stream ended (possibly empty).
            Once end of stream is seen, every later call returns
            ``(b"", END_OF_STREAM)`` without touching the stream.

        Raises:
            ScanLimitExceededError: ``value_max_scan_size`` bytes were read
                without finding a delimiter.
            Exception: anything raised by the stream's read, unchanged.
        """
        if self._eof:
            return b"", ScanStatus.END_OF_STREAM

        scratch = self._scratch
        scratch.clear()

        delimiter = self.delimiter
        delim_len = len(delimiter)
        last = delimiter[-1]
        limit = self.value_max_scan_size

        while True:
            b = self._read_byte()
            if b is None:
                self._eof = True
                return bytes(scratch), ScanStatus.END_OF_STREAM

            scratch.append(b)
            size = len(scratch)

            if b == last and size >= delim_len and scratch[size - delim_len:] == delimiter:
                return bytes(scratch[: size - delim_len]), ScanStatus.OK

            if size == limit:
                logger.error(
                    "No delimiter found within %d bytes (%d bytes scanned)",
                    limit,
                    self._bytes_scanned,
                )
                raise ScanLimitExceededError(
                    f"Value exceeded max scan size of {limit} bytes",
                    limit=limit,
                    value=bytes(scratch),
                    bytes_scanned=self._bytes_scanned,
                )

    def __iter__(self) -> Iterator[bytes]:
        """Iterate values until end of stream.

        A trailing empty value (input ending with the delimiter, or empty
        input) is not yielded.
        """
        while True:
            value, status = self.next()
            if status is ScanStatus.END_OF_STREAM:
                if value:
                    yield value
                return
            yield value


class RateLimitedScanner(ValueScanner):
    """``ValueScanner`` that waits for a rate-limit token before each byte.

    Args:
        stream: Binary stream to read
        delimiter: Value delimiter
        value_max_scan_size: Max bytes scanned per value
        rate_limit: Bytes per second (must be > 0 unless ``limiter`` is given)
        limiter: Pre-built limiter to share between scanners
        acquire_timeout: Max seconds to wait per byte (None = wait forever)
    """

    def __init__(
        self,
        stream: BinaryIO,
        delimiter: bytes,
        value_max_scan_size: int = MIN_VALUE_MAX_SCAN_SIZE,
        rate_limit: float = 0,
        *,
        limiter: Optional[RateLimiter] = None,
        acquire_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(stream, delimiter, value_max_scan_size)
        if limiter is None:
            if rate_limit <= 0:
                raise ConfigurationError(
                    "rate_limit must be > 0 for a rate-limited scanner",
                    field="rate_limit",
                    value=rate_limit,
                )
            limiter = RateLimiter.for_byte_rate(rate_limit)
        self.limiter = limiter
        self.acquire_timeout = acquire_timeout

    def _read_byte(self) -> Optional[int]:
        if not self.limiter.acquire(timeout=self.acquire_timeout):
            raise RateLimitError(
                "Timed out waiting for rate limiter",
                rate=self.limiter.rate,
                timeout=self.acquire_timeout,
            )
        return super()._read_byte()


def build_scanner(
    stream: BinaryIO,
    delimiter: bytes,
    value_max_scan_size: int = MIN_VALUE_MAX_SCAN_SIZE,
    rate_limit: float = 0,
) -> ValueScanner:
    """Create a plain scanner, or a rate-limited one when ``rate_limit > 0``."""
    if rate_limit and rate_limit > 0:
        return RateLimitedScanner(stream, delimiter, value_max_scan_size, rate_limit)
    return ValueScanner(stream, delimiter, value_max_scan_size)
