"""Structured exception hierarchy for the splitter.

Provides specific exception types for the failure modes of a split run,
with context for debugging. Errors raised by the underlying byte stream
are never wrapped; they reach the caller of ``Splitter.run`` unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "SplitterError",
    "ConfigurationError",
    "AlreadyStartedError",
    "ScanLimitExceededError",
    "RateLimitError",
]


class SplitterError(Exception):
    """Base exception for all splitter errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(SplitterError):
    """Error in splitter configuration.

    Raised at construction time, never during a run.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = dict(kwargs.pop("details", None) or {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)

        super().__init__(message, details=details, **kwargs)


class AlreadyStartedError(SplitterError):
    """Raised when ``run()`` is called on a splitter that already started.

    The original run is not affected and no bytes are read.
    """

    def __init__(self, message: str = "Splitter run already started", **kwargs: Any) -> None:
        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = "Create a new Splitter instance for each stream."
        super().__init__(message, suggestion=suggestion, **kwargs)


class ScanLimitExceededError(SplitterError):
    """A single value exceeded the maximum scan size without a delimiter.

    Terminal for the run: the partially built chunk is not flushed.
    """

    def __init__(
        self,
        message: str,
        *,
        limit: int,
        value: bytes = b"",
        bytes_scanned: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        self.limit = limit
        self.value = value
        self.bytes_scanned = bytes_scanned

        details = dict(kwargs.pop("details", None) or {})
        details["limit"] = limit
        details["value_length"] = len(value)
        if bytes_scanned is not None:
            details["bytes_scanned"] = bytes_scanned

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the delimiter matches the input, "
                "or raise value_max_scan_size."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class RateLimitError(SplitterError):
    """The rate limiter could not grant a token for the next byte read."""

    def __init__(
        self,
        message: str,
        *,
        rate: Optional[float] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.rate = rate
        self.timeout = timeout

        details = dict(kwargs.pop("details", None) or {})
        if rate is not None:
            details["rate"] = rate
        if timeout is not None:
            details["timeout"] = timeout

        super().__init__(message, details=details, **kwargs)
