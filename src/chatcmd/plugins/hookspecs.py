"""Pluggy hook specifications for chatcmd setup extensions.

Both hooks run while a CommandReader is being assembled: converters first,
so commands contributed by any plugin can rely on converters contributed
by any other.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from chatcmd.commands.spec import CommandSpec, CommandTable
    from chatcmd.conversion.registry import ConversionRegistry

hookspec = pluggy.HookspecMarker("chatcmd")
hookimpl = pluggy.HookimplMarker("chatcmd")


class ChatcmdHookSpec:
    """Hook specifications for the chatcmd plugin system."""

    @hookspec
    def register_converters(self, conversions: ConversionRegistry) -> None:
        """Register deserializers and serializers on *conversions*."""

    @hookspec
    def register_commands(self) -> CommandTable | Iterable[CommandSpec] | None:
        """Return commands to add to the reader."""
