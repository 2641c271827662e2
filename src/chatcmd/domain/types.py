"""Command classification enums.

These enums describe where a command listens, where it replies, and
whether it needs the bot to be mentioned before the prefix.
"""

from __future__ import annotations

from enum import StrEnum


class Scope(StrEnum):
    """Message sources a command listens to."""

    PRIVATE = "private"
    SHARED = "shared"
    BOTH = "both"

    @property
    def private(self) -> bool:
        """Whether the command occupies the private (direct) namespace."""
        return self is not Scope.SHARED

    @property
    def shared(self) -> bool:
        """Whether the command occupies the shared (group) namespace."""
        return self is not Scope.PRIVATE


class ReplyTarget(StrEnum):
    """Default destination for a command's output."""

    SOURCE = "source"
    GENERAL = "general"
    DM = "dm"
    OTHER = "other"
    NONE = "none"
    REACTION = "reaction"


class MentionSetting(StrEnum):
    """Whether a command requires the bot to be mentioned before the prefix.

    ``DEFAULT`` inherits the reader's setting; a reader set to ``DEFAULT``
    behaves like ``NO``.
    """

    DEFAULT = "default"
    PREFIX = "prefix"
    NO = "no"
