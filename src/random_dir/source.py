"""Decision sources that drive tree generation.

A decision source turns a finite byte buffer into bounded integers, byte
strings and uniform choices. Generation consumes it front to back, so the
same buffer always yields the same sequence of decisions. Every draw raises
:class:`~random_dir.errors.ExhaustedInputError` once the buffer cannot
satisfy it.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

from random_dir.errors import ExhaustedInputError

T = TypeVar("T")


class DecisionSource(Protocol):
    def int_in_range(self, lo: int, hi: int) -> int:
        """Return an integer in the inclusive range ``[lo, hi]``."""

    def bytes(self) -> bytes:
        """Return a byte string whose length is itself decided by the source."""

    def choose(self, options: Sequence[T]) -> T:
        """Return one element of the non-empty ``options``."""

    def bool(self) -> bool:
        """Return a boolean."""


class Unstructured:
    """Finite-buffer decision source.

    Integers are read big-endian, using as many bytes as the width of the
    requested range and reduced modulo its size. A degenerate range
    (``lo == hi``) consumes nothing. Byte strings are decoded element by
    element, so a random buffer yields short names and contents.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    @classmethod
    def from_seed(cls, seed: int, size: int = 4096) -> Unstructured:
        """Build a source over ``size`` reproducible pseudo-random bytes."""
        return cls(random.Random(seed).randbytes(size))

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def is_empty(self) -> bool:
        return self.remaining == 0

    def int_in_range(self, lo: int, hi: int) -> int:
        if lo > hi:
            raise ValueError(f"Invalid range: lo={lo} is greater than hi={hi}.")
        span = hi - lo
        if span == 0:
            return lo
        width = (span.bit_length() + 7) // 8
        raw = int.from_bytes(self._take(width, lo=lo, hi=hi), "big")
        return lo + raw % (span + 1)

    def bytes(self) -> bytes:
        if self.remaining == 0:
            raise ExhaustedInputError(context={"operation": "bytes", "remaining": "0"})
        out = bytearray()
        # Every element is preceded by a continue flag (low bit). Running out
        # of input ends the sequence.
        while self.remaining:
            flag = self._take(1)[0]
            if not flag & 1 or not self.remaining:
                break
            out += self._take(1)
        return bytes(out)

    def choose(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("Cannot choose from an empty sequence.")
        return options[self.int_in_range(0, len(options) - 1)]

    def bool(self) -> bool:
        return bool(self.int_in_range(0, 1) & 1)

    def _take(self, count: int, *, lo: int | None = None, hi: int | None = None) -> bytes:
        if count > self.remaining:
            context = {"operation": "int_in_range", "requested": str(count), "remaining": str(self.remaining)}
            if lo is not None and hi is not None:
                context["range"] = f"[{lo}, {hi}]"
            raise ExhaustedInputError(context=context)
        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return chunk


__all__ = ["DecisionSource", "Unstructured"]
