"""Root CLI group for chatcmd with global flags and subcommands."""

from __future__ import annotations

import sys

import click

from chatcmd import __version__
from chatcmd.app import CommandReader
from chatcmd.config.settings import ChatcmdSettings
from chatcmd.dispatch.result import DispatchStatus
from chatcmd.output.console import create_console, get_output
from chatcmd.transport.console import ConsoleContext, ConsoleTransport


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The reader is built lazily so ``--help`` and ``--version`` never load
    plugins.
    """

    def __init__(self, settings: ChatcmdSettings) -> None:
        self.settings = settings
        self.console = create_console()
        self.transport = ConsoleTransport(self.console)
        self._reader: CommandReader | None = None

        from chatcmd.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def reader(self) -> CommandReader:
        """The command reader (created on first access)."""
        if self._reader is None:
            from chatcmd.plugins.manager import PluginManager

            plugins = PluginManager()
            plugins.discover_and_load(
                local_dir=self.settings.plugin_dir(),
                disabled=self.settings.plugins.disabled,
            )
            self._reader = CommandReader.from_settings(
                self.settings, self.transport, plugins=plugins
            )
        return self._reader

    def flush(self) -> None:
        """Write everything rendered so far to stdout."""
        click.echo(get_output(self.console), nl=False)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="chatcmd")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_json: bool, config_path: str | None) -> None:
    """chatcmd — run chat command lines from the terminal."""
    settings = ChatcmdSettings.from_cli(
        config_path=config_path,
        verbose=verbose or None,
        log_json=log_json or None,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("lines", nargs=-1)
@click.option("--private", is_flag=True, help="Treat lines as direct messages.")
@click.option("--author", default="console", show_default=True, help="Name of the caller.")
@click.option(
    "--capability", "capabilities", multiple=True, help="Capability the caller holds (repeatable)."
)
@click.pass_obj
def run(
    app: AppContext,
    lines: tuple[str, ...],
    private: bool,
    author: str,
    capabilities: tuple[str, ...],
) -> None:
    """Dispatch LINES (or stdin, one command per line) through the reader."""
    reader = app.reader
    source = lines or tuple(line.rstrip("\n") for line in sys.stdin)
    failed = False
    for line in source:
        context = ConsoleContext(
            text=line,
            author=author,
            is_private=private,
            capabilities=frozenset(capabilities),
        )
        result = reader.handle(context)
        if result.status is DispatchStatus.IGNORED:
            click.echo(f"(ignored) {line}", err=True)
        failed = failed or result.status is DispatchStatus.ERROR
    app.flush()
    if failed:
        raise SystemExit(1)


@cli.command()
@click.option("--page", type=int, default=None, help="Show a single help page.")
@click.pass_obj
def commands(app: AppContext, page: int | None) -> None:
    """Print the help index of every registered command."""
    reader = app.reader
    numbers = [page] if page is not None else range(1, reader.help.page_count + 1)
    for number in numbers:
        app.transport.send("help", reader.help.page(number))
    app.flush()
