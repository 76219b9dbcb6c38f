"""Observability utilities for split runs.

Combines per-run counters with structured logging helpers so a run can
emit both a metrics summary and JSON-friendly logs from the same module.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "PhaseTimer",
    "RunMetrics",
    "JSONFormatter",
    "setup_logging",
]


@dataclass
class PhaseTimer:
    """Timer tracking a named phase of a run."""

    name: str
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None

    def stop(self) -> float:
        """Stop the timer and return the duration (seconds)."""
        self.end_time = time.monotonic()
        return self.duration

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    @property
    def running(self) -> bool:
        return self.end_time is None


@dataclass
class RunMetrics:
    """Counters for a single split run.

    Updated only from the run loop's thread.
    """

    values_accepted: int = 0
    values_filtered: int = 0
    chunks_flushed: int = 0
    oversized_chunks: int = 0
    bytes_scanned: int = 0
    bytes_flushed: int = 0
    phases: List[PhaseTimer] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @contextmanager
    def time_phase(self, name: str) -> Generator[PhaseTimer, None, None]:
        """Context manager that tracks a phase duration."""
        timer = PhaseTimer(name=name)
        self.phases.append(timer)
        try:
            yield timer
        finally:
            timer.stop()

    def record_chunk(self, size: int, limit: int) -> None:
        self.chunks_flushed += 1
        self.bytes_flushed += size
        if size > limit:
            self.oversized_chunks += 1

    @property
    def total_duration(self) -> float:
        return sum(p.duration for p in self.phases)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten metrics for structured logging."""
        result: Dict[str, Any] = {
            "values_accepted": self.values_accepted,
            "values_filtered": self.values_filtered,
            "chunks_flushed": self.chunks_flushed,
            "oversized_chunks": self.oversized_chunks,
            "bytes_scanned": self.bytes_scanned,
            "bytes_flushed": self.bytes_flushed,
            "started_at": self.started_at.isoformat(),
        }
        for phase in self.phases:
            result[f"phase_{phase.name}_seconds"] = round(phase.duration, 3)
        return result


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "splitter.lib.accumulator", "message": "Flushed chunk 3"}
    """

    def __init__(
        self,
        include_fields: Optional[list[str]] = None,
        exclude_fields: Optional[list[str]] = None,
    ):
        """Initialize JSON formatter.

        Args:
            include_fields: Extra fields to include (from record.__dict__)
            exclude_fields: Fields to exclude from output
        """
        super().__init__()
        self.include_fields = include_fields or []
        self.exclude_fields = exclude_fields or []

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for name in self.include_fields:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        # Attributes set via extra=
        extra_attrs = {
            k: v
            for k, v in record.__dict__.items()
            if k not in logging.LogRecord("", 0, "", 0, "", (), None).__dict__
            and k not in ("message", "asctime")
            and k not in self.exclude_fields
        }
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
) -> None:
    """Configure the root logger for CLI use.

    Logs go to stderr so chunk output on stdout stays machine-readable.

    Args:
        verbose: Enable debug-level logging (overrides ``level``)
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
        level: Level name such as "INFO" or "WARNING" (default INFO)
    """
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName((level or "INFO").upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    formatter = JSONFormatter() if json_format else logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
