"""Console transport — runs a reader against a terminal.

Every delivered output is recorded in :attr:`ConsoleTransport.sent` and,
when a Rich console is attached, rendered to it. Used by the ``chatcmd``
CLI and by tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rich.console import Console

from chatcmd.domain.output import Reaction, RichPayload
from chatcmd.domain.types import ReplyTarget
from chatcmd.output.console import render_output


@dataclass(frozen=True)
class ConsoleContext:
    """A line typed at the console, with the caller's capabilities."""

    text: str
    author: str = "console"
    is_private: bool = False
    capabilities: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Delivery:
    """One output handed to the transport."""

    target: str
    output: str | RichPayload | Reaction


class ConsoleTransport:
    """Transport that prints to a Rich console.

    Channels are plain strings: ``"source"`` for the channel a line came
    from, ``"dm:<author>"`` for direct messages, ``"general"`` for the
    shared general channel, or the ``reply_other`` id verbatim.
    """

    def __init__(self, console: Console | None = None, *, bot_name: str = "chatcmd") -> None:
        self.console = console
        self.bot_name = bot_name
        self.sent: list[Delivery] = []

    def mentions(self) -> tuple[str, ...]:
        return (f"@{self.bot_name}", f"<@{self.bot_name}>")

    def reply_target(self, context: Any, target: ReplyTarget, other: str | None) -> str | None:
        if target is ReplyTarget.DM:
            return f"dm:{context.author}"
        if target is ReplyTarget.GENERAL:
            return None if context.is_private else "general"
        if target is ReplyTarget.OTHER:
            return other
        return f"dm:{context.author}" if context.is_private else "source"

    def has_capability(self, context: Any, capability: str) -> bool:
        return capability in getattr(context, "capabilities", ())

    def send(self, target: Any, output: str | RichPayload) -> None:
        self._record(Delivery(target=str(target), output=output))

    def react(self, context: Any, reaction: Reaction) -> None:
        self._record(Delivery(target=f"message from {context.author}", output=reaction))

    def texts(self) -> list[str]:
        """Plain-text outputs sent so far, in order."""
        return [d.output for d in self.sent if isinstance(d.output, str)]

    def _record(self, delivery: Delivery) -> None:
        self.sent.append(delivery)
        if self.console is not None:
            render_output(self.console, delivery.target, delivery.output)
