"""Command specifications and the name registry."""

from chatcmd.commands.registry import CommandRegistry
from chatcmd.commands.spec import CommandSpec, CommandTable, ParameterSpec, param

__all__ = ["CommandRegistry", "CommandSpec", "CommandTable", "ParameterSpec", "param"]
