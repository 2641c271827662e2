"""Extension layer — plugin system via pluggy.

INVARIANT: Plugin failures are warnings, never errors.
"""

from chatcmd.plugins.hookspecs import hookimpl
from chatcmd.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
