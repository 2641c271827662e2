"""PluginManager: finds plugins and installs their contributions into a reader.

Plugins come from two places:

- distributions declaring a ``chatcmd.plugins`` entry point, and
- ``*.py`` files in a local directory (``[plugins] local_dir``). Every class
  in such a file with at least one ``@hookimpl`` method is instantiated and
  registered as ``chatcmd_local_plugin_<stem>.<ClassName>``.

Loading and installing never raise: a plugin that fails is logged as a
warning and left out.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

import pluggy

from chatcmd.domain.errors import RegistrationError
from chatcmd.plugins.hookspecs import ChatcmdHookSpec

if TYPE_CHECKING:
    from chatcmd.app import CommandReader

PROJECT_NAME = "chatcmd"
ENTRY_POINT_GROUP = "chatcmd.plugins"
LOCAL_MODULE_PREFIX = "chatcmd_local_plugin_"

logger = logging.getLogger(__name__)


class PluginManager:
    """A pluggy manager for the ``chatcmd`` hooks."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ChatcmdHookSpec)
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def discover_and_load(
        self, *, local_dir: Path | None = None, disabled: Iterable[str] = ()
    ) -> list[str]:
        """Load entry-point plugins, then the files in *local_dir*.

        Names in *disabled* (entry-point names, or local module names) are
        blocked first and never load.

        Returns:
            Names of all registered plugins.
        """
        for name in disabled:
            self._pm.set_blocked(name)
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_entry_point_classes()
        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if not path.name.startswith("_"):
                    self._load_local(path)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        logger.debug("Registered plugin %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def get_plugins(self) -> list[object]:
        """Registered plugins in registration order."""
        return [plugin for _name, plugin in self._named_plugins()]

    def list_plugin_names(self) -> list[str]:
        return [name for name, _plugin in self._named_plugins()]

    def _named_plugins(self) -> list[tuple[str, object]]:
        # Blocked names stay listed with a None plugin.
        return [(name, p) for name, p in self._pm.list_name_plugin() if p is not None]

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def install(self, reader: CommandReader) -> int:
        """Apply every plugin to *reader*: all converters, then all commands.

        Returns:
            How many commands were registered.
        """
        plugins = self._named_plugins()
        for name, plugin in plugins:
            if hasattr(plugin, "register_converters"):
                try:
                    plugin.register_converters(conversions=reader.conversions)
                except Exception:
                    logger.warning(
                        "Failed to register converters from plugin %s", name, exc_info=True
                    )

        before = len(reader.commands)
        for name, plugin in plugins:
            if not hasattr(plugin, "register_commands"):
                continue
            try:
                source = plugin.register_commands()
                if source is not None:
                    reader.register(source)
            except (RegistrationError, TypeError):
                logger.warning("Failed to register commands from plugin %s", name, exc_info=True)
            except Exception:
                logger.warning("Failed to collect commands from plugin %s", name, exc_info=True)
        return len(reader.commands) - before

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _instantiate_entry_point_classes(self) -> None:
        """Swap plugin classes registered by entry points for instances."""
        for name, plugin in self._named_plugins():
            if not inspect.isclass(plugin) or not self._implements_hooks(plugin):
                continue
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)

    def _load_local(self, path: Path) -> None:
        module_name = LOCAL_MODULE_PREFIX + path.stem
        if self._pm.is_blocked(module_name):
            logger.debug("Skipping disabled local plugin %s", path)
            return
        module = _import_file(module_name, path)
        if module is None:
            return
        for cls in self._plugin_classes(module):
            try:
                self.register_plugin(cls(), name=f"{module_name}.{cls.__name__}")
            except Exception:
                logger.warning(
                    "Failed to instantiate plugin class %s from %s",
                    cls.__name__,
                    path,
                    exc_info=True,
                )

    def _plugin_classes(self, module: ModuleType) -> Iterator[type]:
        for _attr, cls in inspect.getmembers(module, inspect.isclass):
            if cls.__module__ == module.__name__ and self._implements_hooks(cls):
                yield cls

    def _implements_hooks(self, cls: type) -> bool:
        return any(
            self._pm.parse_hookimpl_opts(cls, attr) is not None
            for attr in dir(cls)
            if not attr.startswith("_")
        )


def _import_file(module_name: str, path: Path) -> ModuleType | None:
    """Import *path* as *module_name*, or log a warning and return None."""
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        return None
    return module
