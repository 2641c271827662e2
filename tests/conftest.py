"""Shared pytest fixtures and test helpers for chatcmd tests."""

from __future__ import annotations

from typing import Any

import pytest
from click.testing import CliRunner

from chatcmd.app import CommandReader
from chatcmd.conversion.builtins import register_builtins
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.transport.console import ConsoleTransport


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def conversions() -> ConversionRegistry:
    """Conversion registry with the built-in converters."""
    registry = ConversionRegistry()
    register_builtins(registry)
    return registry


@pytest.fixture
def transport() -> ConsoleTransport:
    """Recording transport with no console attached."""
    return ConsoleTransport()


@pytest.fixture
def reader(transport: ConsoleTransport) -> CommandReader:
    """Reader without the default help commands."""
    return CommandReader(transport, use_default_help=False)


@pytest.fixture
def _isolated_config(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in an empty directory with no CHATCMD_* environment."""
    monkeypatch.chdir(tmp_path)
    for name in ("CHATCMD_CONFIG", "CHATCMD_DISPATCH__PREFIX", "CHATCMD_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
