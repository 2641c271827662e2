"""The closed set of values a transport can deliver.

Plain text and rich payloads are sent to the reply target; reactions are
attached to the message that triggered the command.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class OutputKind(StrEnum):
    TEXT = "text"
    RICH = "rich"
    REACTION = "reaction"


class RichField(BaseModel):
    """One titled block inside a rich payload."""

    model_config = {"frozen": True}

    name: str
    value: str
    inline: bool = False


class RichPayload(BaseModel):
    """Structured message (embed-like) rendered by the transport."""

    model_config = {"frozen": True}

    title: str = ""
    description: str = ""
    fields: list[RichField] = Field(default_factory=list)
    footer: str = ""

    def char_count(self) -> int:
        return (
            len(self.title)
            + len(self.description)
            + len(self.footer)
            + sum(len(f.name) + len(f.value) for f in self.fields)
        )


class Reaction(BaseModel):
    """An emoji token to attach to the original message."""

    model_config = {"frozen": True}

    emoji: str

    def __str__(self) -> str:
        return self.emoji


OUTPUT_TYPES: dict[type, OutputKind] = {
    str: OutputKind.TEXT,
    RichPayload: OutputKind.RICH,
    Reaction: OutputKind.REACTION,
}


def output_kind(value: Any) -> OutputKind | None:
    """Return the kind of *value*, or None if it is not directly outputable."""
    for cls, kind in OUTPUT_TYPES.items():
        if isinstance(value, cls):
            return kind
    return None
