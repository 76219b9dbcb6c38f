"""Splitter configuration.

Two layers:
- ``SplitterConfig``: the runtime options a ``Splitter`` is built from,
  including the flush handler and value filter callables.
- ``SplitterSettings``: pydantic-settings model for the CLI, loaded from
  YAML files, ``SPLITTER_*`` environment variables and ``.env``.

Example YAML (splitter.yaml):
    splitter:
      delimiter: "\\n"
      chunk_size_limit: 1048576
      value_max_scan_size: 65536
      drop_values: ["", "-"]
      output_dir: ./chunks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from splitter.lib.chunk import FlushHandler, ValueFilter
from splitter.lib.constants import (
    DEFAULT_START_CHUNK_SN,
    MIN_CHUNK_SIZE_LIMIT,
    MIN_VALUE_MAX_SCAN_SIZE,
)
from splitter.lib.env import expand_options
from splitter.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "SplitterConfig",
    "SplitterSettings",
    "decode_delimiter",
    "load_settings",
    "make_drop_filter",
]

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_LOG_FORMATS = ("console", "json")


@dataclass
class SplitterConfig:
    """Options for one ``Splitter``.

    Read once when the splitter is constructed; changing the object
    afterwards has no effect on that splitter.

    Attributes:
        delimiter: Non-empty byte sequence separating values
        chunk_size_limit: Soft cap on chunk payload bytes (raised to >= 16)
        value_max_scan_size: Hard cap on bytes scanned per value (raised to >= 4096)
        flush_handler: Called with each completed ``Chunk`` (default: print)
        value_filter: Maps a value to a replacement; empty or None drops it
        start_chunk_sn: Sequence number of the first chunk
        rate_limit: Max bytes read per second, 0 for unlimited
    """

    delimiter: bytes
    chunk_size_limit: int = MIN_CHUNK_SIZE_LIMIT
    value_max_scan_size: int = MIN_VALUE_MAX_SCAN_SIZE
    flush_handler: Optional[FlushHandler] = None
    value_filter: Optional[ValueFilter] = None
    start_chunk_sn: int = DEFAULT_START_CHUNK_SN
    rate_limit: float = 0

    @property
    def resolved_chunk_size_limit(self) -> int:
        return max(self.chunk_size_limit, MIN_CHUNK_SIZE_LIMIT)

    @property
    def resolved_value_max_scan_size(self) -> int:
        return max(self.value_max_scan_size, MIN_VALUE_MAX_SCAN_SIZE)


def decode_delimiter(text: str) -> bytes:
    """Turn a delimiter from text config into bytes.

    Backslash escapes (``\\n``, ``\\t``, ``\\x00``, ``\\\\``) are processed;
    other characters are UTF-8 encoded. ``\\x`` escapes give raw bytes.

    Raises:
        ValueError: Malformed escape, or a ``\\u`` escape above ``\\xff``
    """
    # unicode_escape maps each non-escape byte to the code point of the same
    # value, so latin-1 turns the result back into the original bytes.
    return text.encode("utf-8").decode("unicode_escape").encode("latin-1")


def make_drop_filter(drop_values: Iterable[Union[str, bytes]]) -> ValueFilter:
    """Build a value filter rejecting the given values exactly."""
    dropped = frozenset(
        v.encode("utf-8") if isinstance(v, str) else bytes(v) for v in drop_values
    )

    def drop_filter(value: bytes) -> Optional[bytes]:
        if value in dropped:
            return None
        return value

    return drop_filter


class SplitterSettings(BaseSettings):
    """CLI settings loaded from YAML, environment variables and ``.env``.

    Environment variables use the ``SPLITTER_`` prefix, e.g.
    ``SPLITTER_CHUNK_SIZE_LIMIT=65536``.
    """

    delimiter: str = Field(default="\\n", description="Delimiter, backslash escapes allowed")
    chunk_size_limit: int = Field(default=MIN_CHUNK_SIZE_LIMIT, description="Soft chunk size cap in bytes")
    value_max_scan_size: int = Field(default=MIN_VALUE_MAX_SCAN_SIZE, description="Max bytes per value")
    start_chunk_sn: int = Field(default=DEFAULT_START_CHUNK_SN, ge=0, description="First chunk sequence number")
    rate_limit: float = Field(default=0, ge=0, description="Max bytes per second, 0 = unlimited")
    drop_values: List[str] = Field(default_factory=list, description="Values to drop")
    output_dir: Optional[str] = Field(default=None, description="Write chunk files here instead of stdout")
    chunk_prefix: str = Field(default="chunk", min_length=1, description="Chunk file name prefix")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: 'json' or 'console'")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    model_config = SettingsConfigDict(
        env_prefix="SPLITTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        """Delimiter must decode to at least one byte."""
        try:
            decoded = decode_delimiter(v)
        except ValueError as exc:
            raise ValueError(f"invalid escape in delimiter: {exc}") from exc
        if not decoded:
            raise ValueError("delimiter must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {list(VALID_LOG_LEVELS)}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in VALID_LOG_FORMATS:
            raise ValueError(f"log_format must be one of: {list(VALID_LOG_FORMATS)}")
        return v.lower()

    @property
    def delimiter_bytes(self) -> bytes:
        return decode_delimiter(self.delimiter)

    def to_config(
        self,
        flush_handler: Optional[FlushHandler] = None,
        value_filter: Optional[ValueFilter] = None,
    ) -> SplitterConfig:
        """Build a ``SplitterConfig``.

        When no ``value_filter`` is given and ``drop_values`` is set, a
        filter dropping those values is used.
        """
        if value_filter is None and self.drop_values:
            value_filter = make_drop_filter(self.drop_values)
        return SplitterConfig(
            delimiter=self.delimiter_bytes,
            chunk_size_limit=self.chunk_size_limit,
            value_max_scan_size=self.value_max_scan_size,
            flush_handler=flush_handler,
            value_filter=value_filter,
            start_chunk_sn=self.start_chunk_sn,
            rate_limit=self.rate_limit,
        )


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", field="config", value=str(path))
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}", field="config") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping", field="config")
    section = data.get("splitter", data)
    if not isinstance(section, dict):
        raise ConfigurationError("'splitter' section must be a mapping", field="splitter")
    return section


def load_settings(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SplitterSettings:
    """Load and validate settings.

    Precedence, highest first: ``overrides`` (None values ignored), the
    YAML file, ``SPLITTER_*`` environment variables, ``.env``, defaults.

    Args:
        path: Optional YAML file; a top-level ``splitter:`` section is used
            when present, otherwise the whole mapping.
        overrides: Values from the command line

    Raises:
        ConfigurationError: File missing or unreadable, or invalid values
    """
    data: Dict[str, Any] = {}
    if path is not None:
        data = expand_options(_read_yaml(Path(path)))
        logger.debug("Loaded settings from %s: %s", path, sorted(data))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return SplitterSettings(**data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field_name = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid splitter settings: {first.get('msg', exc)}",
            field=field_name,
            value=first.get("input"),
            details={"error_count": exc.error_count()},
        ) from exc
