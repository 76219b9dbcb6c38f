"""Split a delimited byte stream into size-bounded, numbered chunks.

Usage:
    python -m splitter access.log --delimiter "\\n" --chunk-size 1048576
    python -m splitter - --delimiter "," --output-dir ./chunks < data.csv
    python -m splitter --demo
"""

from splitter.lib.accumulator import RunResult, RunStatus, Splitter, split_bytes
from splitter.lib.chunk import Chunk
from splitter.lib.config import SplitterConfig
from splitter.lib.errors import (
    AlreadyStartedError,
    ConfigurationError,
    ScanLimitExceededError,
    SplitterError,
)
from splitter.lib.scanner import ScanStatus, ValueScanner

__version__ = "1.0.0"

__all__ = [
    "Chunk",
    "RunResult",
    "RunStatus",
    "Splitter",
    "SplitterConfig",
    "split_bytes",
    "ScanStatus",
    "ValueScanner",
    "AlreadyStartedError",
    "ConfigurationError",
    "ScanLimitExceededError",
    "SplitterError",
]
