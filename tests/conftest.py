"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from random_dir.config import DEVICE_MODE_RANGE, FUTURE_MTIME_SLACK, MAX_ENTRIES, MAX_NANOSECONDS

NOW = 1_700_000_000


class StreamBuilder:
    """Encode decisions into the bytes ``Unstructured`` will decode them from.

    Byte strings are written as a continue flag and a byte per element,
    followed by a clear flag.
    """

    def __init__(self, now: int = NOW) -> None:
        self.now = now
        self._chunks: list[bytes] = []

    def int(self, value: int, lo: int, hi: int) -> StreamBuilder:
        assert lo <= value <= hi
        span = hi - lo
        if span:
            width = (span.bit_length() + 7) // 8
            self._chunks.append((value - lo).to_bytes(width, "big"))
        return self

    def raw(self, data: bytes) -> StreamBuilder:
        self._chunks.append(data)
        return self

    def entry_count(self, count: int) -> StreamBuilder:
        return self.int(count, 0, MAX_ENTRIES)

    def printable_name(self, name: str) -> StreamBuilder:
        self.int(len(name), 1, 10)
        for char in name:
            self.int(ord(char), ord("a"), ord("z"))
        return self

    def name(self, data: bytes) -> StreamBuilder:
        return self.content(data)

    def choose(self, index: int, count: int) -> StreamBuilder:
        return self.int(index, 0, count - 1)

    def mtime(self, seconds: int, nanoseconds: int = 0) -> StreamBuilder:
        self.int(seconds, 0, self.now + FUTURE_MTIME_SLACK)
        return self.int(nanoseconds, 0, MAX_NANOSECONDS)

    def mode(self, mode: int) -> StreamBuilder:
        return self.int(mode, 0, 0o777)

    def device_mode(self, mode: int) -> StreamBuilder:
        return self.int(mode, *DEVICE_MODE_RANGE)

    def content(self, data: bytes) -> StreamBuilder:
        for byte in data:
            self._chunks.append(bytes([1, byte]))
        self._chunks.append(b"\x00")
        return self

    def build(self) -> bytes:
        return b"".join(self._chunks)


@pytest.fixture
def now() -> int:
    """Frozen reference time matching the ``stream`` fixture's encoding."""
    return NOW


@pytest.fixture
def stream() -> Callable[[], StreamBuilder]:
    """Provide a factory for hand-crafted decision streams."""
    return StreamBuilder
