"""ChatcmdSettings: one frozen object built from every configuration layer.

Later layers lose to earlier ones:

1. keyword arguments (the CLI passes its flags here)
2. ``CHATCMD_*`` environment variables, ``__`` separating section and key
   (``CHATCMD_DISPATCH__PREFIX=?``)
3. ``chatcmd.toml``, found by :func:`~chatcmd.config.discovery.find_config`
4. the defaults of the section models
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from chatcmd.config.discovery import find_config
from chatcmd.config.models import ConversionConfig, DispatchConfig, HelpConfig, PluginsConfig

logger = logging.getLogger(__name__)

# The TOML file is chosen by from_cli(); the source reads it while the model
# is being constructed on the same thread.
_pending = threading.local()


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Sections of a ``chatcmd.toml`` file.

    Top-level tables that no settings field knows about are dropped with a
    warning instead of failing validation.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self.toml_path = toml_path
        self._sections: dict[str, Any] = {}
        if toml_path is None or not toml_path.is_file():
            return
        try:
            data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {toml_path}: {exc}"
            raise click.ClickException(msg) from exc
        for key, value in data.items():
            if key in settings_cls.model_fields:
                self._sections[key] = value
            else:
                logger.warning("Ignoring unknown section [%s] in %s", key, toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._sections.get(field_name), field_name, field_name in self._sections

    def __call__(self) -> dict[str, Any]:
        return dict(self._sections)


def resolve_config_path(config_path: str | Path | None, start: Path | None) -> Path | None:
    """The TOML file to load: *config_path* if given, else a walk-up search.

    Raises:
        click.ClickException: *config_path* was given but is not a file.
    """
    if config_path is None or config_path == "":
        return find_config(start)
    path = Path(config_path)
    if not path.is_file():
        msg = f"Config file not found: {config_path}"
        raise click.ClickException(msg)
    return path


class ChatcmdSettings(BaseSettings):
    """Settings for a command reader and the ``chatcmd`` CLI.

    Attributes:
        root: Directory holding ``chatcmd.toml`` (or CWD if none was found);
            a relative ``plugins.local_dir`` is resolved against it.
        config_path: The TOML file that was loaded, if any.
        verbose: Debug logging.
        log_json: JSON log lines instead of console output.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CHATCMD_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    verbose: bool = False
    log_json: bool = False

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    help: HelpConfig = Field(default_factory=HelpConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml = TomlSettingsSource(settings_cls, getattr(_pending, "toml_path", None))
        return init_settings, env_settings, toml

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | Path | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> ChatcmdSettings:
        """Load settings the way the ``chatcmd`` command does.

        Flags in *cli_flags* that are None are treated as not given.
        """
        toml_path = resolve_config_path(config_path, root)
        if root is None:
            root = toml_path.parent if toml_path is not None else Path.cwd()
        flags = {key: value for key, value in cli_flags.items() if value is not None}

        _pending.toml_path = toml_path
        try:
            settings = cls(root=root, config_path=toml_path, **flags)
        finally:
            _pending.toml_path = None
        logger.debug("Loaded settings from %s", toml_path or "defaults")
        return settings

    def plugin_dir(self) -> Path | None:
        """The local plugin directory, resolved against :attr:`root`."""
        if not self.plugins.local_dir:
            return None
        path = Path(self.plugins.local_dir)
        return path if path.is_absolute() else self.root / path
