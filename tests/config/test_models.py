"""Tests for the TOML section models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chatcmd.config.models import ConversionConfig, DispatchConfig, HelpConfig, PluginsConfig
from chatcmd.domain.types import MentionSetting


class TestSectionModels:
    def test_defaults(self) -> None:
        assert DispatchConfig().prefix == "!"
        assert DispatchConfig().mention_setting is MentionSetting.NO
        assert DispatchConfig().use_default_help is True
        assert HelpConfig().page_chars == 750
        assert ConversionConfig().char_drop_silently is False
        assert PluginsConfig().local_dir is None

    def test_mention_setting_from_string(self) -> None:
        config = DispatchConfig.model_validate({"mention_setting": "prefix"})
        assert config.mention_setting is MentionSetting.PREFIX
        assert config.use_default_help is True

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DispatchConfig().prefix = "?"  # type: ignore[misc]

    def test_rejects_empty_prefix(self) -> None:
        with pytest.raises(ValidationError):
            DispatchConfig(prefix="")

    def test_rejects_tiny_pages(self) -> None:
        with pytest.raises(ValidationError):
            HelpConfig(page_chars=10)
