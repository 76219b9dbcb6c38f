"""Pytest configuration and fixtures."""

import io
import logging
import random
import sys
import threading
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from splitter.lib.handlers import ChunkCollector  # noqa: E402


class TrickleStream:
    """Binary stream returning at most ``step`` bytes per read, without read1."""

    def __init__(self, data: bytes, step: int = 1):
        self._data = data
        self._pos = 0
        self.step = step
        self.read_calls = 0

    def read(self, n: int = -1) -> bytes:
        self.read_calls += 1
        size = self.step if n < 0 else min(n, self.step)
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


class FailingStream:
    """Stream that serves ``data`` and then raises ``error``."""

    def __init__(self, data: bytes, error: Exception):
        self._inner = TrickleStream(data)
        self.error = error

    def read(self, n: int = -1) -> bytes:
        chunk = self._inner.read(n)
        if not chunk:
            raise self.error
        return chunk


class BlockingStream:
    """Stream whose first read blocks until ``release`` is set."""

    def __init__(self, data: bytes):
        self._inner = io.BytesIO(data)
        self.reading = threading.Event()
        self.release = threading.Event()

    def read(self, n: int = -1) -> bytes:
        self.reading.set()
        self.release.wait(timeout=5)
        return self._inner.read(n)


class UnreadableStream:
    """Stream that fails the test if anything reads it."""

    def read(self, n: int = -1) -> bytes:
        raise AssertionError("stream must not be read")


@pytest.fixture
def collector():
    """Fresh in-memory flush handler."""
    return ChunkCollector()


@pytest.fixture
def random_values():
    """Deterministic list of comma-free ASCII values, some empty."""
    rng = random.Random(1234)
    alphabet = "abcdefghijklmnopqrstuvwxyz0123456789 "
    return [
        "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 40))).encode("ascii")
        for _ in range(300)
    ]


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after a test reconfigures logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
