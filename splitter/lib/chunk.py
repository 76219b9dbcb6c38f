"""Chunk model and callback types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

__all__ = ["Chunk", "FlushHandler", "ValueFilter"]


@dataclass(frozen=True)
class Chunk:
    """A completed batch of consecutive accepted values.

    Attributes:
        chunk_sn: Chunk sequence number (contiguous from the configured start)
        start_value_sn: Sequence number of the first value (inclusive)
        end_value_sn: Sequence number of the last value (inclusive)
        data: Values joined by the delimiter, without a trailing delimiter.
            The handler owns this copy.
        bytes_scanned: Stream bytes consumed when the chunk was flushed
    """

    chunk_sn: int
    start_value_sn: int
    end_value_sn: int
    data: bytes
    bytes_scanned: int

    @property
    def value_count(self) -> int:
        return self.end_value_sn - self.start_value_sn + 1

    @property
    def size(self) -> int:
        return len(self.data)

    def values(self, delimiter: bytes) -> List[bytes]:
        """Split the payload back into its values."""
        return self.data.split(delimiter)


FlushHandler = Callable[[Chunk], None]

# Returning b"" or None rejects the value
ValueFilter = Callable[[bytes], Optional[bytes]]
