"""The chat platform as seen by the dispatcher.

The dispatcher never talks to a chat service directly. A transport
resolves reply targets, answers capability checks, and delivers output;
the message context is whatever object the transport hands to
``CommandReader.handle`` and is passed through to handlers untouched.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from chatcmd.domain.output import Reaction, RichPayload
from chatcmd.domain.types import ReplyTarget


@runtime_checkable
class MessageContext(Protocol):
    """The minimum a message context exposes to the dispatcher."""

    @property
    def text(self) -> str: ...

    @property
    def author(self) -> Any: ...

    @property
    def is_private(self) -> bool: ...


@runtime_checkable
class Transport(Protocol):
    def mentions(self) -> tuple[str, ...]:
        """Textual forms of a mention of the bot (``<@id>``, ``@bot``...)."""
        ...

    def reply_target(self, context: Any, target: ReplyTarget, other: str | None) -> Any:
        """Resolve *target* for *context*. None when it cannot be resolved."""
        ...

    def has_capability(self, context: Any, capability: str) -> bool: ...

    def send(self, target: Any, output: str | RichPayload) -> None: ...

    def react(self, context: Any, reaction: Reaction) -> None: ...
