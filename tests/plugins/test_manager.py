"""Tests for PluginManager — discovery, registration, and installation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from chatcmd.app import CommandReader
from chatcmd.commands.spec import CommandSpec, CommandTable
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.conversion.tokens import Converted
from chatcmd.plugins import hookimpl
from chatcmd.plugins.manager import PluginManager
from chatcmd.transport.console import ConsoleContext, ConsoleTransport


def _upper(tokens: tuple[str, ...], max_tokens: int) -> Converted:
    return Converted(tokens[0].upper(), 1)


class _ShoutPlugin:
    """Contributes a converter and a command that uses it."""

    @hookimpl
    def register_converters(self, conversions: ConversionRegistry) -> None:
        conversions.register_deserializer("loud", _upper)

    @hookimpl
    def register_commands(self) -> CommandTable:
        table = CommandTable()
        table.add(
            CommandSpec(name="shout", handler=lambda context, word: word, parameters=("loud",))
        )
        return table


class _ListPlugin:
    @hookimpl
    def register_commands(self) -> list[CommandSpec]:
        return [CommandSpec(name="ping", handler=lambda context: "pong")]


class _BrokenPlugin:
    @hookimpl
    def register_commands(self) -> list[CommandSpec]:
        raise RuntimeError("plugin bug")


class _ConflictingPlugin:
    @hookimpl
    def register_commands(self) -> list[CommandSpec]:
        return [CommandSpec(name="ping", handler=lambda context: "again")]


@pytest.fixture
def plugin_reader(transport: ConsoleTransport) -> CommandReader:
    return CommandReader(transport, use_default_help=False)


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "register_converters")
        assert hasattr(pm.hook, "register_commands")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_ListPlugin(), name="list")
        assert "list" in pm.list_plugin_names()

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_ListPlugin())
        assert "_ListPlugin" in pm.list_plugin_names()

    def test_unregister_plugin(self) -> None:
        pm = PluginManager()
        plugin = _ListPlugin()
        pm.register_plugin(plugin, name="list")
        pm.unregister(plugin)
        assert "list" not in pm.list_plugin_names()
        assert pm.get_plugins() == []

    def test_discover_marks_loaded(self) -> None:
        pm = PluginManager()
        assert pm.is_loaded is False
        pm.discover_and_load()
        assert pm.is_loaded is True


class TestInstall:
    def test_converters_before_commands(
        self, plugin_reader: CommandReader, transport: ConsoleTransport
    ) -> None:
        pm = PluginManager()
        pm.register_plugin(_ListPlugin())
        pm.register_plugin(_ShoutPlugin())
        assert pm.install(plugin_reader) == 2
        plugin_reader.handle(ConsoleContext(text="!shout hey"))
        assert transport.texts() == ["HEY"]

    def test_failures_are_warnings(
        self, plugin_reader: CommandReader, caplog: pytest.LogCaptureFixture
    ) -> None:
        pm = PluginManager()
        pm.register_plugin(_BrokenPlugin())
        pm.register_plugin(_ListPlugin())
        pm.register_plugin(_ConflictingPlugin())
        with caplog.at_level(logging.WARNING, logger="chatcmd.plugins.manager"):
            assert pm.install(plugin_reader) == 1
        messages = [r.getMessage() for r in caplog.records]
        assert any("_BrokenPlugin" in m for m in messages)
        assert any("_ConflictingPlugin" in m for m in messages)
        assert plugin_reader.handle(ConsoleContext(text="!ping")).outputs == ["pong"]

    def test_from_settings_installs_plugins(self, transport: ConsoleTransport) -> None:
        from chatcmd.config.settings import ChatcmdSettings

        pm = PluginManager()
        pm.register_plugin(_ListPlugin())
        reader = CommandReader.from_settings(ChatcmdSettings(), transport, plugins=pm)
        assert reader.commands.lookup("ping", private=False) is not None


PLUGIN_SOURCE = '''
from chatcmd.commands.spec import CommandSpec
from chatcmd.plugins import hookimpl


class EchoPlugin:
    @hookimpl
    def register_commands(self):
        return [CommandSpec(name="echo", handler=lambda context, text: text, parameters=("str",))]
'''


class TestLocalDiscovery:
    def test_loads_single_file_plugins(
        self, tmp_path: Path, plugin_reader: CommandReader
    ) -> None:
        (tmp_path / "echo.py").write_text(PLUGIN_SOURCE, encoding="utf-8")
        (tmp_path / "_private.py").write_text("raise RuntimeError('skipped')", encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)
        assert "chatcmd_local_plugin_echo.EchoPlugin" in names
        assert pm.install(plugin_reader) == 1
        assert plugin_reader.handle(ConsoleContext(text="!echo hi")).outputs == ["hi"]

    def test_broken_file_is_a_warning(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / "broken.py").write_text("this is not python", encoding="utf-8")
        pm = PluginManager()
        with caplog.at_level(logging.WARNING, logger="chatcmd.plugins.manager"):
            names = pm.discover_and_load(local_dir=tmp_path)
        assert not any("broken" in name for name in names)
        assert any("Failed to load local plugin" in r.getMessage() for r in caplog.records)

    def test_disabled_plugins_are_blocked(self, tmp_path: Path) -> None:
        (tmp_path / "echo.py").write_text(PLUGIN_SOURCE, encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path, disabled=["chatcmd_local_plugin_echo"])
        assert names == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        pm = PluginManager()
        pm.discover_and_load(local_dir=tmp_path / "absent")
        assert pm.is_loaded

    def test_classes_without_hooks_are_skipped(self, tmp_path: Path) -> None:
        helper = "\n\nclass Helper:\n    def register_commands(self):\n        return []\n"
        source = PLUGIN_SOURCE + helper
        (tmp_path / "echo.py").write_text(source, encoding="utf-8")
        names = PluginManager().discover_and_load(local_dir=tmp_path)
        assert names == ["chatcmd_local_plugin_echo.EchoPlugin"]
