"""Chunk accumulation over a delimiter-separated byte stream.

``Splitter`` drives a ``ValueScanner`` over one stream, filters values,
packs them into size-bounded chunks and hands each completed chunk to a
flush handler.

Rules:
- Value sequence numbers start at 0 and count accepted values only.
- Chunk sequence numbers are contiguous from ``start_chunk_sn``.
- A chunk payload never ends with the delimiter.
- A new value is flushed into a fresh chunk when the current payload
  plus the value would exceed ``chunk_size_limit``. A value that alone
  exceeds the limit still becomes its own (oversized) chunk.
- End of stream flushes the pending chunk. A stop request does not.

Example:
    collector = ChunkCollector()
    splitter = Splitter(SplitterConfig(delimiter=b",", flush_handler=collector))
    result = splitter.run(io.BytesIO(b"apple,pear,peach"))
"""

from __future__ import annotations

import io
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, List, Optional

from splitter.lib.chunk import Chunk
from splitter.lib.config import SplitterConfig
from splitter.lib.errors import AlreadyStartedError, ConfigurationError
from splitter.lib.handlers import ChunkCollector, print_chunk
from splitter.lib.observability import RunMetrics
from splitter.lib.scanner import ScanStatus, ValueScanner, build_scanner

logger = logging.getLogger(__name__)

__all__ = [
    "RunState",
    "RunStatus",
    "RunResult",
    "Splitter",
    "ChunkAccumulator",
    "split_bytes",
]


class RunState(Enum):
    """Lifecycle of a ``Splitter``. Only moves forward."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


class RunStatus(Enum):
    """How a run that did not raise ended."""

    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RunResult:
    """Outcome of ``Splitter.run``."""

    status: RunStatus
    chunks_flushed: int
    values_accepted: int
    values_filtered: int
    bytes_scanned: int
    duration_seconds: float

    @property
    def stopped(self) -> bool:
        return self.status is RunStatus.STOPPED


class Splitter:
    """Splits one byte stream into sequentially numbered chunks.

    A splitter runs exactly once. ``request_stop()`` may be called from
    any thread at any time; the run loop checks it before reading each
    value, so a value already being scanned is always read to the end.
    """

    def __init__(self, config: SplitterConfig) -> None:
        delimiter = config.delimiter
        if isinstance(delimiter, str):
            delimiter = delimiter.encode("utf-8")
        if not delimiter:
            raise ConfigurationError(
                "delimiter must not be empty",
                field="delimiter",
                value=config.delimiter,
            )

        self._delimiter = bytes(delimiter)
        self._chunk_size_limit = config.resolved_chunk_size_limit
        self._value_max_scan_size = config.resolved_value_max_scan_size
        self._flush_handler = config.flush_handler if config.flush_handler is not None else print_chunk
        self._value_filter = config.value_filter
        self._rate_limit = config.rate_limit

        if self._chunk_size_limit != config.chunk_size_limit:
            logger.debug(
                "chunk_size_limit %d raised to minimum %d",
                config.chunk_size_limit,
                self._chunk_size_limit,
            )
        if self._value_max_scan_size != config.value_max_scan_size:
            logger.debug(
                "value_max_scan_size %d raised to minimum %d",
                config.value_max_scan_size,
                self._value_max_scan_size,
            )

        self._buffer = bytearray()
        self._chunk_sn = config.start_chunk_sn
        self._chunk_start_value_sn = 0
        self._last_value_sn = -1

        self._state = RunState.IDLE
        self._state_lock = threading.Lock()
        self._stop_requested = threading.Event()
        self.metrics = RunMetrics()

    @property
    def delimiter(self) -> bytes:
        return self._delimiter

    @property
    def chunk_size_limit(self) -> int:
        return self._chunk_size_limit

    @property
    def value_max_scan_size(self) -> int:
        return self._value_max_scan_size

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def request_stop(self) -> None:
        """Ask the run loop to exit at its next iteration. Idempotent."""
        if not self._stop_requested.is_set():
            logger.debug("Stop requested")
        self._stop_requested.set()

    def _claim_start(self) -> None:
        with self._state_lock:
            if self._state is not RunState.IDLE:
                raise AlreadyStartedError(details={"state": self._state.value})
            self._state = RunState.RUNNING

    def run(self, stream: BinaryIO) -> RunResult:
        """Consume ``stream`` to the end, flushing chunks as they fill.

        Returns:
            ``RunResult`` with status COMPLETED (end of stream reached and
            the last chunk flushed) or STOPPED (stop requested; pending
            values not yet flushed are dropped).

        Raises:
            AlreadyStartedError: This splitter already ran or is running.
                Nothing is read from ``stream``.
            ScanLimitExceededError: A value had no delimiter within
                ``value_max_scan_size`` bytes. Nothing further is flushed.
            Exception: Errors from the stream or the flush handler,
                unchanged.
        """
        self._claim_start()

        scanner: Optional[ValueScanner] = None
        start = time.monotonic()
        try:
            scanner = build_scanner(
                stream,
                self._delimiter,
                self._value_max_scan_size,
                self._rate_limit,
            )
            with self.metrics.time_phase("split"):
                status = self._run_loop(scanner)
        except Exception:
            self._state = RunState.FAILED
            if scanner is not None:
                self.metrics.bytes_scanned = scanner.bytes_scanned
            logger.error(
                "Split run failed after %d chunks (%d bytes scanned)",
                self.metrics.chunks_flushed,
                self.metrics.bytes_scanned,
            )
            raise

        self.metrics.bytes_scanned = scanner.bytes_scanned
        self._state = RunState.COMPLETED if status is RunStatus.COMPLETED else RunState.STOPPED
        logger.info(
            "Split run %s: %d chunks, %d values (%d filtered), %d bytes scanned",
            status.value,
            self.metrics.chunks_flushed,
            self.metrics.values_accepted,
            self.metrics.values_filtered,
            scanner.bytes_scanned,
            extra={"metrics": self.metrics.to_dict()},
        )
        return RunResult(
            status=status,
            chunks_flushed=self.metrics.chunks_flushed,
            values_accepted=self.metrics.values_accepted,
            values_filtered=self.metrics.values_filtered,
            bytes_scanned=scanner.bytes_scanned,
            duration_seconds=time.monotonic() - start,
        )

    def _run_loop(self, scanner: ValueScanner) -> RunStatus:
        while True:
            if self._stop_requested.is_set():
                if self._buffer:
                    logger.warning(
                        "Stopped with %d unflushed values (value sn %d-%d) discarded",
                        self._last_value_sn - self._chunk_start_value_sn + 1,
                        self._chunk_start_value_sn,
                        self._last_value_sn,
                    )
                return RunStatus.STOPPED

            value, status = scanner.next()

            if self._value_filter is not None and value:
                value = self._value_filter(value)
                if not value:
                    self.metrics.values_filtered += 1

            if value:
                self._add_value(value, scanner.bytes_scanned)

            if status is ScanStatus.END_OF_STREAM:
                if self._buffer:
                    self._flush(scanner.bytes_scanned)
                return RunStatus.COMPLETED

    def _add_value(self, value: bytes, bytes_scanned: int) -> None:
        # The buffer ends with a delimiter, so len(buffer) + len(value) is
        # the payload size once this value is appended.
        if self._buffer and len(self._buffer) + len(value) > self._chunk_size_limit:
            self._flush(bytes_scanned)
            self._chunk_start_value_sn = self._last_value_sn + 1

        self._buffer += value
        self._buffer += self._delimiter
        self._last_value_sn += 1
        self.metrics.values_accepted += 1

    def _flush(self, bytes_scanned: int) -> None:
        chunk_sn = self._chunk_sn
        self._chunk_sn += 1

        data = bytes(self._buffer[: len(self._buffer) - len(self._delimiter)])
        self._buffer.clear()

        chunk = Chunk(
            chunk_sn=chunk_sn,
            start_value_sn=self._chunk_start_value_sn,
            end_value_sn=self._last_value_sn,
            data=data,
            bytes_scanned=bytes_scanned,
        )
        self.metrics.record_chunk(len(data), self._chunk_size_limit)
        if len(data) > self._chunk_size_limit:
            logger.debug(
                "Chunk %d holds a single %d-byte value over the %d-byte limit",
                chunk_sn,
                len(data),
                self._chunk_size_limit,
            )
        else:
            logger.debug(
                "Flushing chunk %d: values %d-%d, %d bytes",
                chunk_sn,
                chunk.start_value_sn,
                chunk.end_value_sn,
                len(data),
            )
        self._flush_handler(chunk)


ChunkAccumulator = Splitter


def split_bytes(data: bytes, delimiter: bytes, **options: Any) -> List[Chunk]:
    """Split an in-memory byte string and return the chunks.

    ``options`` are any other ``SplitterConfig`` fields except
    ``flush_handler``.
    """
    collector = ChunkCollector()
    config = SplitterConfig(delimiter=delimiter, flush_handler=collector, **options)
    Splitter(config).run(io.BytesIO(data))
    return collector.chunks
