"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the item usage engine test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from dnd_items.core.config import RulesConfig
from dnd_items.engine.dice import RollOptions, RollOutcome
from dnd_items.engine.persistence import InMemoryPersistence
from dnd_items.models import Actor, Item, ItemKind
from dnd_items.models.enums import NotificationKind


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dnd_items.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_ITEMS_DEBUG": "true",
        "DND_ITEMS_LOG_LEVEL": "DEBUG",
        "DND_ITEMS_RULES__MAX_LEVEL": "30",
        "DND_ITEMS_RULES__CRITICAL_THRESHOLD": "19",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def rules() -> RulesConfig:
    """Default rules tables."""
    return RulesConfig()


# =============================================================================
# Item Fixtures
# =============================================================================


@pytest.fixture
def fighter_class() -> Item:
    """Fighter 4 with one hit die spent and a scale value."""
    return Item(
        name="Fighter",
        type=ItemKind.CLASS,
        system={"levels": 4, "hit_dice": "d10", "hit_dice_used": 1},
        advancement=[
            {"_id": "hp", "type": "HitPoints"},
            {
                "_id": "second-wind",
                "type": "ScaleValue",
                "configuration": {
                    "identifier": "second-wind",
                    "scale": {"1": {"value": 1}, "3": {"value": 2}},
                },
            },
            {
                "_id": "superiority",
                "type": "ScaleValue",
                "configuration": {
                    "identifier": "superiority-die",
                    "scale": {"3": {"n": 1, "die": 8}},
                },
            },
        ],
    )


@pytest.fixture
def wizard_class() -> Item:
    """Wizard 2 with no hit dice spent."""
    return Item(
        name="Wizard",
        type=ItemKind.CLASS,
        system={
            "levels": 2,
            "hit_dice": "d6",
            "spellcasting": {"progression": "full", "ability": "int"},
        },
    )


@pytest.fixture
def arrows() -> Item:
    """Twenty +1 arrows."""
    return Item(
        name="Arrows +1",
        type=ItemKind.CONSUMABLE,
        system={
            "consumable_type": "ammo",
            "quantity": 20,
            "attack_bonus": "1",
            "damage": {"parts": [["1", "piercing"]]},
        },
    )


@pytest.fixture
def longbow(arrows: Item) -> Item:
    """A proficient longbow consuming arrows."""
    return Item(
        name="Longbow",
        type=ItemKind.WEAPON,
        system={
            "weapon_type": "martialR",
            "action_type": "rwak",
            "proficient": True,
            "damage": {"parts": [["1d8 + @mod", "piercing"]]},
            "range": {"value": 150, "long": 600, "units": "ft"},
            "consume": {"type": "ammo", "target": arrows.id, "amount": 1},
        },
    )


@pytest.fixture
def greataxe() -> Item:
    """A proficient melee weapon with extra critical damage."""
    return Item(
        name="Greataxe",
        type=ItemKind.WEAPON,
        system={
            "weapon_type": "martialM",
            "action_type": "mwak",
            "proficient": True,
            "damage": {"parts": [["1d12 + @mod", "slashing"]]},
            "critical": {"damage": "1d6"},
        },
    )


@pytest.fixture
def healing_potion() -> Item:
    """Two single-use potions that are destroyed when empty."""
    return Item(
        name="Potion of Healing",
        type=ItemKind.CONSUMABLE,
        system={
            "consumable_type": "potion",
            "action_type": "heal",
            "quantity": 2,
            "activation": {"type": "action", "cost": 1},
            "uses": {"value": 1, "max": 1, "per": "charges", "auto_destroy": True},
            "damage": {"parts": [["2d4 + 2", "healing"]]},
        },
    )


@pytest.fixture
def fire_bolt() -> Item:
    """A cantrip that scales with character level."""
    return Item(
        name="Fire Bolt",
        type=ItemKind.SPELL,
        system={
            "level": 0,
            "school": "evo",
            "action_type": "rsak",
            "damage": {"parts": [["1d10", "fire"]]},
            "scaling": {"mode": "cantrip", "formula": "1d10"},
            "preparation": {"mode": "always"},
        },
    )


@pytest.fixture
def fireball() -> Item:
    """A third level area spell that scales with slot level."""
    return Item(
        name="Fireball",
        type=ItemKind.SPELL,
        system={
            "level": 3,
            "school": "evo",
            "action_type": "save",
            "activation": {"type": "action", "cost": 1},
            "duration": {"units": "inst"},
            "target": {"value": 20, "units": "ft", "type": "sphere"},
            "range": {"value": 150, "units": "ft"},
            "components": {"vocal": True, "somatic": True, "material": True},
            "materials": {"value": "A tiny ball of bat guano and sulfur"},
            "save": {"ability": "dex", "scaling": "spell"},
            "damage": {"parts": [["8d6", "fire"]]},
            "scaling": {"mode": "level", "formula": "1d6"},
            "preparation": {"mode": "prepared", "prepared": True},
        },
    )


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def character(
    fighter_class: Item,
    wizard_class: Item,
    longbow: Item,
    arrows: Item,
    greataxe: Item,
    healing_potion: Item,
    fire_bolt: Item,
    fireball: Item,
) -> Actor:
    """Level 6 fighter/wizard (proficiency +3) owning the sample items."""
    return Actor(
        name="Thorin",
        abilities={
            "str": {"value": 16},
            "dex": {"value": 14, "proficient": 1},
            "con": {"value": 14, "proficient": 1},
            "int": {"value": 10},
            "wis": {"value": 12},
            "cha": {"value": 8},
        },
        attributes={"spellcasting": "int", "hp": {"value": 40, "max": 52}},
        spells={
            "spell1": {"value": 4, "max": 4},
            "spell3": {"value": 2, "max": 2},
            "spell5": {"value": 1, "max": 1},
        },
        resources={"primary": {"value": 3, "max": 5, "label": "Ki"}},
        items=[
            fighter_class,
            wizard_class,
            longbow,
            arrows,
            greataxe,
            healing_potion,
            fire_bolt,
            fireball,
        ],
    )


@pytest.fixture
def persistence(character: Actor) -> InMemoryPersistence:
    """In-memory store holding the sample character."""
    return InMemoryPersistence([character])


# =============================================================================
# Engine Fixtures
# =============================================================================


class FixedRollEngine:
    """Roll engine stub returning a fixed total and natural d20."""

    def __init__(self, total: int = 10, natural: int = 10) -> None:
        self.total = total
        self.natural = natural
        self.calls: list[tuple[str, dict[str, Any], RollOptions]] = []

    def roll(
        self,
        formula: str,
        context: dict[str, Any] | None = None,
        options: RollOptions | None = None,
    ) -> RollOutcome:
        options = options or RollOptions()
        self.calls.append((formula, context or {}, options))
        is_d20 = "d20" in formula
        threshold = options.critical_threshold or 20
        return RollOutcome(
            formula=formula,
            total=self.total,
            terms=[self.natural] if is_d20 else [],
            is_critical=self.natural >= threshold if is_d20 else options.critical,
            is_fumble=is_d20 and self.natural == 1,
            mode=options.mode,
        )


class RecordingNotifier:
    """Notification sink remembering every message."""

    def __init__(self) -> None:
        self.messages: list[tuple[NotificationKind, str, str | None]] = []

    def notify(
        self,
        kind: NotificationKind,
        message: str,
        link: str | None = None,
    ) -> None:
        self.messages.append((kind, message, link))


@pytest.fixture
def roll_engine() -> FixedRollEngine:
    """Deterministic roll engine (total 10, natural 10)."""
    return FixedRollEngine()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notification sink that records messages."""
    return RecordingNotifier()
