"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from dnd_items.core.config import (
    RulesConfig,
    RulesSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_items.core.exceptions import ConfigurationError


class TestRulesSettings:
    """Tests for RulesSettings configuration."""

    def test_default_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default rules settings."""
        monkeypatch.chdir(tmp_path)

        settings = RulesSettings()

        assert settings.max_level == 20
        assert settings.critical_threshold == 20
        assert set(settings.spell_upcast_modes) == {"always", "pact", "prepared"}

    def test_threshold_bounds(self) -> None:
        """Test that the critical threshold must be a d20 face."""
        with pytest.raises(pydantic.ValidationError):
            RulesSettings(critical_threshold=21)


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "D&D Item Usage Engine"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.json_logs is False
        assert settings.is_production is True

    def test_environment_overrides(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test environment variables, including nested rules settings."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is True
        assert settings.is_production is False
        assert settings.log_level == "DEBUG"
        assert settings.rules.max_level == 30
        assert settings.rules.critical_threshold == 19


class TestRulesConfig:
    """Tests for the immutable rules tables."""

    def test_defaults(self) -> None:
        """Test default tables."""
        rules = RulesConfig()

        assert rules.max_level == 20
        assert rules.abilities["dex"] == "Dexterity"
        assert rules.spell_levels[0] == "Cantrip"
        assert rules.spell_levels[3] == "3rd Level"
        assert rules.spell_levels[9] == "9th Level"
        assert "sphere" in rules.area_target_types
        assert "creature" not in rules.area_target_types

    def test_frozen(self) -> None:
        """Test that rules cannot be modified after creation."""
        rules = RulesConfig()

        with pytest.raises(pydantic.ValidationError):
            rules.max_level = 10  # type: ignore[misc]

    def test_requires_upcast_mode(self) -> None:
        """Test that at least one upcast mode is required."""
        with pytest.raises(ConfigurationError) as exc_info:
            RulesConfig(spell_upcast_modes=())

        assert exc_info.value.details["config_key"] == "spell_upcast_modes"

    def test_from_settings(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test building rules from loaded settings."""
        monkeypatch.chdir(tmp_path)

        rules = RulesConfig.from_settings(get_settings())

        assert rules.max_level == 30
        assert rules.critical_threshold == 19


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_caching(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings are cached."""
        monkeypatch.chdir(tmp_path)

        settings1 = get_settings()
        settings2 = get_settings()

        assert isinstance(settings1, Settings)
        assert settings1 is settings2

    def test_cache_clear(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that cache can be cleared."""
        monkeypatch.chdir(tmp_path)

        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_invalid_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that invalid settings are reported as ConfigurationError."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DND_ITEMS_LOG_LEVEL", "VERBOSE")

        with pytest.raises(ConfigurationError):
            get_settings()
