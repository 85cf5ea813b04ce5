"""Configuration management for the item usage engine.

Two layers live here:

* ``Settings`` - runtime settings loaded with pydantic-settings from
  environment variables and ``.env`` files.
* ``RulesConfig`` - the immutable rules tables (labels, upcast modes,
  target types, level cap) injected into every engine component instead
  of being looked up from module globals.

Example:
    >>> from dnd_items.core.config import get_settings, RulesConfig
    >>> rules = RulesConfig.from_settings(get_settings())
    >>> rules.max_level
    20

Environment Variables:
    DND_ITEMS_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_ITEMS_JSON_LOGS: Emit JSON logs instead of console output
    DND_ITEMS_RULES__MAX_LEVEL: Maximum supported character level
    DND_ITEMS_RULES__CRITICAL_THRESHOLD: Default critical hit threshold
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_items.core.constants import DEFAULT_CRITICAL_THRESHOLD, MAX_CHARACTER_LEVEL
from dnd_items.core.exceptions import ConfigurationError


class RulesSettings(BaseSettings):
    """Tunable game rules.

    Attributes:
        max_level: Highest character level advancements can target.
        critical_threshold: Natural roll for a critical hit by default.
        spell_upcast_modes: Preparation modes whose spells consume slots.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_ITEMS_RULES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_level: int = Field(
        default=MAX_CHARACTER_LEVEL,
        ge=1,
        le=30,
        description="Maximum character level",
    )
    critical_threshold: int = Field(
        default=DEFAULT_CRITICAL_THRESHOLD,
        ge=2,
        le=20,
        description="Default critical hit threshold",
    )
    spell_upcast_modes: tuple[str, ...] = Field(
        default=("always", "pact", "prepared"),
        description="Spell preparation modes that consume spell slots",
    )


class Settings(BaseSettings):
    """Main application settings.

    Attributes:
        app_name: Application name.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Emit JSON log lines.
        rules: Game rules settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_ITEMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Item Usage Engine",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON formatted logs",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


# =============================================================================
# Rules Tables
# =============================================================================


def _spell_levels() -> dict[int, str]:
    labels = {0: "Cantrip", 1: "1st Level", 2: "2nd Level", 3: "3rd Level"}
    labels.update({level: f"{level}th Level" for level in range(4, 10)})
    return labels


class RulesConfig(BaseModel):
    """Immutable rules tables consulted by every engine component.

    Built once (usually from ``Settings``) and passed explicitly to the
    preparation, resolution and roll components.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_level: int = Field(default=MAX_CHARACTER_LEVEL, ge=1)
    critical_threshold: int = Field(default=DEFAULT_CRITICAL_THRESHOLD, ge=2, le=20)
    spell_upcast_modes: tuple[str, ...] = ("always", "pact", "prepared")

    abilities: dict[str, str] = Field(
        default_factory=lambda: {
            "str": "Strength",
            "dex": "Dexterity",
            "con": "Constitution",
            "int": "Intelligence",
            "wis": "Wisdom",
            "cha": "Charisma",
        }
    )
    damage_types: dict[str, str] = Field(
        default_factory=lambda: {
            "acid": "Acid",
            "bludgeoning": "Bludgeoning",
            "cold": "Cold",
            "fire": "Fire",
            "force": "Force",
            "lightning": "Lightning",
            "necrotic": "Necrotic",
            "piercing": "Piercing",
            "poison": "Poison",
            "psychic": "Psychic",
            "radiant": "Radiant",
            "slashing": "Slashing",
            "thunder": "Thunder",
        }
    )
    healing_types: dict[str, str] = Field(
        default_factory=lambda: {"healing": "Healing", "temphp": "Healing (Temporary)"}
    )
    consumption_types: dict[str, str] = Field(
        default_factory=lambda: {
            "ammo": "Ammunition",
            "attribute": "Attribute",
            "hitDice": "Hit Dice",
            "material": "Material",
            "charges": "Item Charges",
        }
    )
    activation_types: dict[str, str] = Field(
        default_factory=lambda: {
            "action": "Action",
            "bonus": "Bonus Action",
            "reaction": "Reaction",
            "minute": "Minute",
            "hour": "Hour",
            "day": "Day",
            "special": "Special",
            "legendary": "Legendary Action",
            "mythic": "Mythic Action",
            "lair": "Lair Action",
            "crew": "Crew Action",
        }
    )
    distance_units: dict[str, str] = Field(
        default_factory=lambda: {
            "ft": "Feet",
            "mi": "Miles",
            "m": "Meters",
            "km": "Kilometers",
            "touch": "Touch",
            "self": "Self",
            "spec": "Special",
            "any": "Any",
        }
    )
    target_types: dict[str, str] = Field(
        default_factory=lambda: {
            "ally": "Ally",
            "cone": "Cone",
            "creature": "Creature",
            "cube": "Cube",
            "cylinder": "Cylinder",
            "enemy": "Enemy",
            "line": "Line",
            "object": "Object",
            "radius": "Radius",
            "self": "Self",
            "space": "Space",
            "sphere": "Sphere",
            "square": "Square",
            "wall": "Wall",
        }
    )
    area_target_types: frozenset[str] = frozenset(
        {"cone", "cube", "cylinder", "line", "radius", "sphere", "square", "wall"}
    )
    time_periods: dict[str, str] = Field(
        default_factory=lambda: {
            "inst": "Instantaneous",
            "turn": "Turns",
            "round": "Rounds",
            "minute": "Minutes",
            "hour": "Hours",
            "day": "Days",
            "month": "Months",
            "year": "Years",
            "perm": "Permanent",
            "spec": "Special",
        }
    )
    spell_levels: dict[int, str] = Field(default_factory=_spell_levels)
    spell_schools: dict[str, str] = Field(
        default_factory=lambda: {
            "abj": "Abjuration",
            "con": "Conjuration",
            "div": "Divination",
            "enc": "Enchantment",
            "evo": "Evocation",
            "ill": "Illusion",
            "nec": "Necromancy",
            "trs": "Transmutation",
        }
    )
    spell_components: dict[str, str] = Field(
        default_factory=lambda: {"vocal": "V", "somatic": "S", "material": "M"}
    )
    spell_tags: dict[str, str] = Field(
        default_factory=lambda: {"concentration": "Concentration", "ritual": "Ritual"}
    )

    @model_validator(mode="after")
    def validate_upcast_modes(self) -> "RulesConfig":
        """Ensure at least one preparation mode consumes spell slots.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If no upcast modes are configured.
        """
        if not self.spell_upcast_modes:
            raise ConfigurationError(
                "At least one spell upcast mode must be configured",
                config_key="spell_upcast_modes",
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "RulesConfig":
        """Build the rules tables from runtime settings.

        Args:
            settings: Loaded application settings.

        Returns:
            A frozen RulesConfig.
        """
        return cls(
            max_level=settings.rules.max_level,
            critical_threshold=settings.rules.critical_threshold,
            spell_upcast_modes=tuple(settings.rules.spell_upcast_modes),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    This is primarily useful for testing or when environment variables
    have changed at runtime.
    """
    get_settings.cache_clear()


__all__ = [
    "RulesSettings",
    "Settings",
    "RulesConfig",
    "get_settings",
    "clear_settings_cache",
]
