"""HelpIndex — paginated command reference built from registered specs.

Each command contributes one entry. Entries are sorted by key (the command
name, with `` server`` or `` dm`` appended for commands limited to one
namespace) and packed into pages under a character budget, so one page
always fits a single rich payload.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from chatcmd.commands.spec import CommandSpec, param
from chatcmd.domain.output import RichField, RichPayload
from chatcmd.domain.tags import INT, RICH, STR
from chatcmd.domain.types import MentionSetting, ReplyTarget, Scope

if TYPE_CHECKING:
    from chatcmd.commands.registry import CommandRegistry
    from chatcmd.dispatch.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_CHARS = 750
DEFAULT_MENTION = "@bot"

_USABLE_IN: dict[Scope, str] = {
    Scope.BOTH: "Server and DM",
    Scope.PRIVATE: "DM only",
    Scope.SHARED: "Server only",
}

_RESPONDS_IN: dict[ReplyTarget, str] = {
    ReplyTarget.DM: "Direct message to caller.",
    ReplyTarget.SOURCE: "Channel command was called in.",
    ReplyTarget.GENERAL: "General channel of original server.",
    ReplyTarget.REACTION: "A reaction to the original message.",
    ReplyTarget.OTHER: "A specific channel of a specific server.",
}

_KEY_SUFFIX: dict[Scope, str] = {Scope.BOTH: "", Scope.SHARED: " server", Scope.PRIVATE: " dm"}


class HelpEntry(BaseModel):
    """One command's block in the help index."""

    model_config = {"frozen": True}

    key: str
    title: str
    body: str

    def as_field(self) -> RichField:
        return RichField(name=self.title, value=self.body)

    def char_count(self) -> int:
        return len(self.title) + len(self.body)


class HelpIndex:
    """Builds and paginates help entries for a dispatcher's commands.

    Args:
        dispatcher: Source of the command registry, the prefix, and the
            mention settings shown in entry titles.
        title: Payload title for every page.
        description: Payload description for every page.
        page_chars: Character budget per page, including title,
            description and footer.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        title: str = "Commands",
        description: str = "",
        page_chars: int = DEFAULT_PAGE_CHARS,
    ) -> None:
        self._dispatcher = dispatcher
        self.title = title
        self.page_chars = page_chars
        self._description = description
        self._entries: tuple[HelpEntry, ...] = ()
        self._pages: tuple[tuple[HelpEntry, ...], ...] = ((),)

    @property
    def commands(self) -> CommandRegistry:
        return self._dispatcher.commands

    @property
    def description(self) -> str:
        return self._description

    @description.setter
    def description(self, value: str) -> None:
        self._description = value
        self.rebuild()

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def entries(self) -> tuple[HelpEntry, ...]:
        return self._entries

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def entry_for(self, spec: CommandSpec) -> HelpEntry:
        """Render the help entry for *spec*."""
        title = f"**{self._dispatcher.prefix}{spec.name}**"
        if self._dispatcher.effective_mention_setting(spec) is MentionSetting.PREFIX:
            mentions = self._dispatcher.transport.mentions()
            title = f"{mentions[0] if mentions else DEFAULT_MENTION} {title}"

        lines: list[str] = []
        if spec.usage:
            lines.append(f"**__Usage:__** {spec.usage}")
        if spec.description:
            lines.append(spec.description)
        lines.append(f"**__Usable in:__** {_USABLE_IN[spec.scope]}")
        names = self.commands.names(spec)
        if len(names) >= 2:
            lines.append(f"**__Aliases:__** {', '.join(names[1:])}")
        responds = _RESPONDS_IN.get(spec.reply)
        if responds:
            lines.append(f"**Bot will respond in:** {responds}")
        if spec.required_capability:
            lines.append(f"**Requires permission:** {spec.required_capability}")
        lines.append("---")
        key = spec.key + _KEY_SUFFIX[spec.scope]
        return HelpEntry(key=key, title=title, body="\n".join(lines))

    def rebuild(self) -> None:
        """Rebuild entries and pages from the currently registered commands."""
        entries = sorted(
            (self.entry_for(spec) for spec in self.commands.commands()), key=lambda e: e.key
        )
        budget = self.page_chars - len(self.title) - len(self.description)
        budget -= len(self._footer(len(entries), len(entries)))

        pages: list[tuple[HelpEntry, ...]] = []
        current: list[HelpEntry] = []
        remaining = budget
        for entry in entries:
            cost = entry.char_count()
            if current and remaining - cost < 0:
                pages.append(tuple(current))
                current = []
                remaining = budget
            current.append(entry)
            remaining -= cost
        pages.append(tuple(current))

        self._entries = tuple(entries)
        self._pages = tuple(pages)
        logger.debug("Help index rebuilt: %d entries on %d pages", len(entries), len(pages))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _footer(page: int, total: int) -> str:
        return f"Page {page} of {total}"

    def page(self, number: int) -> RichPayload:
        """Help page *number* (1-based)."""
        total = self.page_count
        if number <= 0:
            fields = [RichField(name="Not far enough.", value="Pages start at 1.")]
        elif number > total:
            fields = [RichField(name="Too far.", value=f"There are only {total} pages.")]
        else:
            fields = [entry.as_field() for entry in self._pages[number - 1]]
        return RichPayload(
            title=self.title,
            description=self.description,
            fields=fields,
            footer=self._footer(number, total),
        )

    def help_with(self, name: str) -> RichPayload | None:
        """Entries for the command(s) bound to *name* in either namespace."""
        specs: list[CommandSpec] = []
        for private in (False, True):
            spec = self.commands.lookup(name, private=private)
            if spec is not None and all(spec is not s for s in specs):
                specs.append(spec)
        if not specs:
            return None
        return RichPayload(
            title=self.title,
            fields=[self.entry_for(spec).as_field() for spec in specs],
        )


def help_commands(index: HelpIndex) -> list[CommandSpec]:
    """The ``help [page]`` and ``helpwith <command>`` commands for *index*."""

    def show_page(context: object, page: int) -> RichPayload:
        return index.page(page)

    def show_command(context: object, name: str) -> RichPayload | str:
        payload = index.help_with(name)
        if payload is None:
            return f"There is no command named {name}."
        return payload

    return [
        CommandSpec(
            name="help",
            handler=show_page,
            usage="help [page]",
            parameters=(param(INT, name="page", default="1"),),
            reply=ReplyTarget.DM,
            description="Lists the commands this bot understands.",
            returns=RICH,
        ),
        CommandSpec(
            name="helpwith",
            handler=show_command,
            usage="helpwith <command>",
            parameters=(param(STR, name="command"),),
            reply=ReplyTarget.DM,
            description="Shows the help entry for one command.",
            returns=RICH,
        ),
    ]
