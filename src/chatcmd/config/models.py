"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, chatcmd.toml only contains
overrides. An empty file (or none at all) gives a working reader with the
``!`` prefix and the default help commands.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from chatcmd.domain.types import MentionSetting

# --- chatcmd.toml sections ---


class DispatchConfig(BaseModel):
    """[dispatch] section."""

    model_config = {"frozen": True}

    prefix: str = Field(default="!", min_length=1)
    mention_setting: MentionSetting = MentionSetting.NO
    use_default_help: bool = True


class ConversionConfig(BaseModel):
    """[conversion] section.

    ``true_words`` / ``false_words`` are added to the default boolean table.
    """

    model_config = {"frozen": True}

    char_drop_silently: bool = False
    true_words: list[str] = Field(default_factory=list)
    false_words: list[str] = Field(default_factory=list)


class HelpConfig(BaseModel):
    """[help] section."""

    model_config = {"frozen": True}

    title: str = "Commands"
    description: str = ""
    page_chars: int = Field(default=750, ge=100)


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    local_dir: str | None = None
    disabled: list[str] = Field(default_factory=list)

