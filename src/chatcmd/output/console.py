"""Rich Console factory and renderers for chatcmd output.

Creates Console instances that render to a StringIO buffer, so the CLI
decides where the text goes. In non-TTY environments (tests, pipes) Rich
automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO
from typing import Any

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

from chatcmd.domain.output import Reaction, RichPayload

CHATCMD_THEME = Theme(
    {
        "chatcmd.target": "bold cyan",
        "chatcmd.title": "bold",
        "chatcmd.field": "bold blue",
        "chatcmd.footer": "dim",
        "chatcmd.reaction": "bold yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=CHATCMD_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def render_payload(payload: RichPayload) -> Panel:
    """Render a rich payload as a bordered panel."""
    parts: list[Any] = []
    if payload.description:
        parts.append(Text(payload.description))
    for field in payload.fields:
        parts.append(Text(field.name, style="chatcmd.field"))
        parts.append(Text(field.value))
    return Panel(
        Group(*parts),
        title=escape(payload.title) if payload.title else None,
        subtitle=escape(payload.footer) if payload.footer else None,
        title_align="left",
        subtitle_align="right",
    )


def render_output(console: Console, target: Any, output: str | RichPayload | Reaction) -> None:
    """Print one delivered output, prefixed by its target."""
    if isinstance(output, Reaction):
        console.print(f"[chatcmd.reaction]+{escape(output.emoji)}[/] on {escape(str(target))}")
    elif isinstance(output, RichPayload):
        console.print(f"[chatcmd.target]{escape(str(target))}>[/]")
        console.print(render_payload(output))
    else:
        console.print(f"[chatcmd.target]{escape(str(target))}>[/] {escape(output)}")
