"""Token cursor over an immutable token sequence.

Deserializers never mutate shared state: they receive the remaining tokens
as a tuple and report how many they consumed via :class:`Converted`. The
dispatcher owns the cursor and advances it.
"""

from __future__ import annotations

import sys
from typing import Any, NamedTuple

UNBOUNDED = sys.maxsize
"""Combine count for array/variadic parameters: take every remaining token."""


class Converted(NamedTuple):
    """A converted value and the number of leading tokens it consumed."""

    value: Any
    consumed: int


def tokenize(text: str) -> tuple[str, ...]:
    """Split a line on runs of whitespace."""
    return tuple(text.split())


class TokenCursor:
    """Read position over an immutable sequence of tokens."""

    __slots__ = ("_position", "_tokens")

    def __init__(self, tokens: tuple[str, ...] | list[str]) -> None:
        self._tokens = tuple(tokens)
        self._position = 0

    def __repr__(self) -> str:
        return f"TokenCursor({list(self.remaining)!r})"

    def __len__(self) -> int:
        return len(self._tokens) - self._position

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self._tokens)

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> tuple[str, ...]:
        return self._tokens[self._position :]

    def pop(self) -> str:
        """Consume and return the next token."""
        if self.exhausted:
            raise IndexError("No tokens remaining")
        token = self._tokens[self._position]
        self._position += 1
        return token

    def advance(self, count: int) -> None:
        if count < 0 or count > len(self):
            msg = f"Cannot advance {count} tokens with {len(self)} remaining"
            raise ValueError(msg)
        self._position += count
