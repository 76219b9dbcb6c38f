"""Splitter library modules.

This package contains the value scanner, the chunk accumulator and the
configuration, handler and logging utilities around them.
"""

from splitter.lib.accumulator import (
    ChunkAccumulator,
    RunResult,
    RunState,
    RunStatus,
    Splitter,
    split_bytes,
)
from splitter.lib.chunk import Chunk, FlushHandler, ValueFilter
from splitter.lib.config import (
    SplitterConfig,
    SplitterSettings,
    decode_delimiter,
    load_settings,
    make_drop_filter,
)
from splitter.lib.constants import MIN_CHUNK_SIZE_LIMIT, MIN_VALUE_MAX_SCAN_SIZE
from splitter.lib.env import expand_env_vars, expand_options, load_env_file
from splitter.lib.errors import (
    AlreadyStartedError,
    ConfigurationError,
    RateLimitError,
    ScanLimitExceededError,
    SplitterError,
)
from splitter.lib.handlers import ChunkCollector, ChunkFileWriter, print_chunk
from splitter.lib.observability import JSONFormatter, RunMetrics, setup_logging
from splitter.lib.rate_limiter import RateLimiter
from splitter.lib.scanner import RateLimitedScanner, ScanStatus, ValueScanner, build_scanner

__all__ = [
    # Accumulator
    "ChunkAccumulator",
    "RunResult",
    "RunState",
    "RunStatus",
    "Splitter",
    "split_bytes",
    # Chunk
    "Chunk",
    "FlushHandler",
    "ValueFilter",
    # Config
    "SplitterConfig",
    "SplitterSettings",
    "decode_delimiter",
    "load_settings",
    "make_drop_filter",
    "MIN_CHUNK_SIZE_LIMIT",
    "MIN_VALUE_MAX_SCAN_SIZE",
    # Environment
    "expand_env_vars",
    "expand_options",
    "load_env_file",
    # Errors
    "AlreadyStartedError",
    "ConfigurationError",
    "RateLimitError",
    "ScanLimitExceededError",
    "SplitterError",
    # Handlers
    "ChunkCollector",
    "ChunkFileWriter",
    "print_chunk",
    # Observability
    "JSONFormatter",
    "RunMetrics",
    "setup_logging",
    # Rate Limiting
    "RateLimiter",
    # Scanner
    "RateLimitedScanner",
    "ScanStatus",
    "ValueScanner",
    "build_scanner",
]
