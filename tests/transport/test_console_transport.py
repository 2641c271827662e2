"""Tests for the console transport and its Rich rendering."""

from __future__ import annotations

from chatcmd.domain.output import Reaction, RichField, RichPayload
from chatcmd.domain.types import ReplyTarget
from chatcmd.output.console import create_console, get_output
from chatcmd.transport.base import MessageContext, Transport
from chatcmd.transport.console import ConsoleContext, ConsoleTransport


class TestConsoleTransport:
    def test_satisfies_protocols(self) -> None:
        assert isinstance(ConsoleTransport(), Transport)
        assert isinstance(ConsoleContext(text="hi"), MessageContext)

    def test_reply_targets(self) -> None:
        transport = ConsoleTransport()
        shared = ConsoleContext(text="", author="ann")
        private = ConsoleContext(text="", author="ann", is_private=True)
        assert transport.reply_target(shared, ReplyTarget.SOURCE, None) == "source"
        assert transport.reply_target(private, ReplyTarget.SOURCE, None) == "dm:ann"
        assert transport.reply_target(shared, ReplyTarget.DM, None) == "dm:ann"
        assert transport.reply_target(shared, ReplyTarget.GENERAL, None) == "general"
        assert transport.reply_target(private, ReplyTarget.GENERAL, None) is None
        assert transport.reply_target(shared, ReplyTarget.OTHER, "ops") == "ops"

    def test_capabilities(self) -> None:
        transport = ConsoleTransport()
        context = ConsoleContext(text="", capabilities=frozenset({"admin"}))
        assert transport.has_capability(context, "admin")
        assert not transport.has_capability(context, "owner")

    def test_mentions(self) -> None:
        assert ConsoleTransport(bot_name="rob").mentions() == ("@rob", "<@rob>")


class TestRendering:
    def test_text_is_escaped(self) -> None:
        console = create_console(no_color=True)
        transport = ConsoleTransport(console)
        transport.send("source", "[bold]not markup[/bold]")
        assert "source> [bold]not markup[/bold]" in get_output(console)

    def test_payload_panel(self) -> None:
        console = create_console(no_color=True, width=60)
        transport = ConsoleTransport(console)
        payload = RichPayload(
            title="Help",
            description="All commands",
            fields=[RichField(name="**!roll**", value="Rolls dice")],
            footer="Page 1 of 1",
        )
        transport.send("dm:ann", payload)
        output = get_output(console)
        for text in ("dm:ann>", "Help", "All commands", "**!roll**", "Rolls dice", "Page 1 of 1"):
            assert text in output

    def test_reaction(self) -> None:
        console = create_console(no_color=True)
        transport = ConsoleTransport(console)
        transport.react(ConsoleContext(text="", author="ann"), Reaction(emoji="+1"))
        assert "++1 on message from ann" in get_output(console)
        assert transport.texts() == []
