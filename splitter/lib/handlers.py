"""Flush handlers for completed chunks.

Handlers run synchronously on the splitter's run loop: a slow handler
delays scanning, and an exception raised by a handler aborts the run.

Key classes:
- print_chunk: default handler, prints chunk metadata and payload
- ChunkCollector: keeps chunks in memory
- ChunkFileWriter: writes one file per chunk plus a checksum manifest
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

from splitter.lib.chunk import Chunk

logger = logging.getLogger(__name__)

__all__ = [
    "print_chunk",
    "ChunkCollector",
    "ChunkFileWriter",
    "MANIFEST_FILENAME",
]

MANIFEST_FILENAME = "_chunks.json"


def print_chunk(chunk: Chunk, out: Optional[TextIO] = None) -> None:
    """Print ``chunk_sn start_value_sn end_value_sn payload`` on one line."""
    print(
        chunk.chunk_sn,
        chunk.start_value_sn,
        chunk.end_value_sn,
        chunk.data.decode("utf-8", errors="replace"),
        file=out,
    )


class ChunkCollector:
    """Flush handler that appends every chunk to ``self.chunks``.

    Example:
        collector = ChunkCollector()
        Splitter(SplitterConfig(delimiter=b"\\n", flush_handler=collector)).run(f)
        for chunk in collector.chunks:
            ...
    """

    def __init__(self) -> None:
        self.chunks: List[Chunk] = []

    def __call__(self, chunk: Chunk) -> None:
        self.chunks.append(chunk)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def payloads(self) -> List[bytes]:
        return [c.data for c in self.chunks]


class ChunkFileWriter:
    """Write each chunk to its own file and track a manifest.

    Files are named ``{prefix}-part-{chunk_sn:04d}{suffix}`` inside
    ``out_dir``. Call ``write_manifest()`` after the run to record file
    hashes, sizes and value ranges in ``_chunks.json``.
    """

    def __init__(
        self,
        out_dir: Union[str, Path],
        *,
        prefix: str = "chunk",
        suffix: str = ".txt",
    ) -> None:
        self.out_dir = Path(out_dir)
        self.prefix = prefix
        self.suffix = suffix
        self.entries: List[Dict[str, Any]] = []

    def path_for(self, chunk_sn: int) -> Path:
        return self.out_dir / f"{self.prefix}-part-{chunk_sn:04d}{self.suffix}"

    def __call__(self, chunk: Chunk) -> None:
        path = self.path_for(chunk.chunk_sn)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(chunk.data)
        except OSError as exc:
            logger.error("Failed to write chunk %d to %s: %s", chunk.chunk_sn, path, exc)
            raise

        self.entries.append({
            "file": path.name,
            "chunk_sn": chunk.chunk_sn,
            "start_value_sn": chunk.start_value_sn,
            "end_value_sn": chunk.end_value_sn,
            "size_bytes": chunk.size,
            "sha256": hashlib.sha256(chunk.data).hexdigest(),
            "bytes_scanned": chunk.bytes_scanned,
        })
        logger.debug("Wrote chunk %d (%d bytes) to %s", chunk.chunk_sn, chunk.size, path)

    @property
    def files(self) -> List[Path]:
        return [self.out_dir / e["file"] for e in self.entries]

    def write_manifest(self, extra_metadata: Optional[Dict[str, Any]] = None) -> Path:
        """Write ``_chunks.json`` describing every file written so far.

        Args:
            extra_metadata: Optional additional top-level keys

        Returns:
            Path to the manifest
        """
        self.out_dir.mkdir(parents=True, exist_ok=True)
        manifest: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "chunk_count": len(self.entries),
            "value_count": sum(
                e["end_value_sn"] - e["start_value_sn"] + 1 for e in self.entries
            ),
            "chunks": self.entries,
        }
        if extra_metadata:
            manifest.update(extra_metadata)

        manifest_path = self.out_dir / MANIFEST_FILENAME
        manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        logger.info("Wrote manifest for %d chunks to %s", len(self.entries), manifest_path)
        return manifest_path
