"""CommandReader — the integrator-facing entry point.

Wires together the conversion registry (with built-in converters), the
command registry, the dispatcher and the help index::

    reader = CommandReader(transport, prefix="?")
    reader.register(table).register(extra_spec)
    reader.handle(message)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from chatcmd.commands.registry import CommandRegistry
from chatcmd.commands.spec import CommandSpec, CommandTable
from chatcmd.conversion.builtins import BooleanWords, register_builtins
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.dispatch.dispatcher import DEFAULT_PREFIX, Dispatcher
from chatcmd.dispatch.result import DispatchResult
from chatcmd.domain.types import MentionSetting
from chatcmd.help.index import DEFAULT_PAGE_CHARS, HelpIndex, help_commands
from chatcmd.transport.base import Transport

if TYPE_CHECKING:
    from chatcmd.config.settings import ChatcmdSettings
    from chatcmd.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

CommandSource = CommandSpec | CommandTable | Iterable[CommandSpec | CommandTable]


class CommandReader:
    """Reads command lines from a transport and runs their handlers.

    Args:
        transport: Chat platform adapter.
        prefix: Text every command line starts with.
        mention_setting: Whether commands need the bot mentioned first,
            unless they declare otherwise.
        use_default_help: Register the ``help`` and ``helpwith`` commands.
        help_title: Title of help pages.
        help_description: Description shown on every help page.
        page_chars: Character budget of one help page.
        boolean_words: Word table for the ``bool`` converter.
        char_drop_silently: Let ``char`` keep the first character of longer
            input instead of failing.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        prefix: str = DEFAULT_PREFIX,
        mention_setting: MentionSetting = MentionSetting.NO,
        use_default_help: bool = True,
        help_title: str = "Commands",
        help_description: str = "",
        page_chars: int = DEFAULT_PAGE_CHARS,
        boolean_words: BooleanWords | None = None,
        char_drop_silently: bool = False,
    ) -> None:
        self.conversions = ConversionRegistry()
        self.boolean_words = register_builtins(
            self.conversions,
            boolean_words=boolean_words,
            char_drop_silently=char_drop_silently,
        )
        self.commands = CommandRegistry()
        self.dispatcher = Dispatcher(
            self.commands,
            self.conversions,
            transport,
            prefix=prefix,
            mention_setting=mention_setting,
        )
        self.help = HelpIndex(
            self.dispatcher,
            title=help_title,
            description=help_description,
            page_chars=page_chars,
        )
        if use_default_help:
            self.register(help_commands(self.help))
        else:
            self.help.rebuild()

    @classmethod
    def from_settings(
        cls,
        settings: ChatcmdSettings,
        transport: Transport,
        *,
        plugins: PluginManager | None = None,
    ) -> CommandReader:
        """Build a reader from settings, then install *plugins* into it."""
        words = BooleanWords()
        words.add_words(settings.conversion.false_words, settings.conversion.true_words)
        reader = cls(
            transport,
            prefix=settings.dispatch.prefix,
            mention_setting=settings.dispatch.mention_setting,
            use_default_help=settings.dispatch.use_default_help,
            help_title=settings.help.title,
            help_description=settings.help.description,
            page_chars=settings.help.page_chars,
            boolean_words=words,
            char_drop_silently=settings.conversion.char_drop_silently,
        )
        if plugins is not None:
            count = plugins.install(reader)
            logger.debug("Installed %d plugin command(s)", count)
        return reader

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, source: CommandSource) -> CommandReader:
        """Register commands (and a table's converters). Chainable.

        Raises:
            RegistrationError: A converter or command is invalid, or a
                primary name is already taken. Commands registered before
                the failing one stay registered.
            TypeError: *source* is not a spec, a table, or an iterable of them.
        """
        try:
            self._register(source)
        finally:
            self.help.rebuild()
        return self

    def _register(self, source: Any) -> None:
        if isinstance(source, CommandSpec):
            self.commands.register(source, self.conversions)
        elif isinstance(source, CommandTable):
            for tag, fn in source.deserializers.items():
                self.conversions.register_deserializer(tag, fn)
            for tag, fn in source.serializers.items():
                self.conversions.register_serializer(tag, fn)
            for spec in source.commands:
                self.commands.register(spec, self.conversions)
        elif isinstance(source, Iterable) and not isinstance(source, str | bytes):
            for item in source:
                self._register(item)
        else:
            msg = f"Cannot register {source!r}: expected a CommandSpec or CommandTable"
            raise TypeError(msg)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def prefix(self) -> str:
        return self.dispatcher.prefix

    @prefix.setter
    def prefix(self, value: str) -> None:
        self.dispatcher.prefix = value
        self.help.rebuild()

    @property
    def mention_setting(self) -> MentionSetting:
        return self.dispatcher.mention_setting

    @mention_setting.setter
    def mention_setting(self, value: MentionSetting | str) -> None:
        self.dispatcher.mention_setting = value
        self.help.rebuild()

    @property
    def help_description(self) -> str:
        return self.help.description

    @help_description.setter
    def help_description(self, value: str) -> None:
        self.help.description = value

    # ------------------------------------------------------------------

    def handle(self, context: Any) -> DispatchResult:
        """Dispatch one incoming message. See :meth:`Dispatcher.handle`."""
        return self.dispatcher.handle(context)
