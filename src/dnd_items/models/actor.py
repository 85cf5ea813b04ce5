"""Pydantic V2 schemas for actors that own and use items.

The engine reads actors freely and never writes to them directly: every
change produced by an item use is returned as an update descriptor and
applied by the persistence sink. The one exception is the transient list
of preparation warnings, refilled on every preparation pass.
"""

from __future__ import annotations

import math
from typing import Annotated, Any
from uuid import uuid4

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from dnd_items.core.constants import BASE_SAVE_DC, DEFAULT_PROFICIENCY_BONUS
from dnd_items.core.logging import get_logger
from dnd_items.models.advancement import ScaleValueAdvancement, parse_advancement
from dnd_items.models.enums import ActorKind, ItemKind, WarningType
from dnd_items.models.item import ClassData, Item


logger = get_logger(__name__)


class AbilityScore(BaseModel):
    """One ability score with its save proficiency.

    Attributes:
        value: The ability score (1-30).
        proficient: Save proficiency multiplier.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    value: Annotated[int, Field(ge=1, le=30)] = 10
    proficient: float = 0

    @property
    def mod(self) -> int:
        return (self.value - 10) // 2


class HitPoints(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    value: int = 0
    max: int = 0
    temp: int = 0


class Attributes(BaseModel):
    """Actor attributes consulted by item preparation.

    Attributes:
        prof: Explicit proficiency bonus; derived from level when unset.
        spellcasting: Spellcasting ability abbreviation.
        hp: Hit points.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    prof: int | None = None
    spellcasting: str = ""
    hp: HitPoints = Field(default_factory=HitPoints)


class Details(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    level: int = Field(default=0, ge=0)
    cr: float | None = Field(default=None, ge=0)
    spell_level: int = Field(default=0, ge=0)


class SpellSlot(BaseModel):
    """A spell slot pool (``spell1``..``spell9`` or ``pact``)."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    value: int = Field(default=0, ge=0)
    max: int = Field(default=0, ge=0)
    level: int | None = None


class Resource(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    value: int = 0
    max: int = 0
    label: str = ""


class ActionBonus(BaseModel):
    """Global bonuses for one action type (``mwak``, ``rsak``, ...)."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    attack: str = ""
    damage: str = ""


class ActorFlags(BaseModel):
    """Special traits that alter attack and damage rolls.

    Attributes:
        weapon_critical_threshold: Lowered crit threshold for weapon attacks.
        spell_critical_threshold: Lowered crit threshold for spell attacks.
        melee_critical_damage_dice: Extra weapon dice on melee critical hits.
        elven_accuracy: Roll a third d20 on advantage with dex/int/wis/cha.
        halfling_lucky: Reroll natural 1s on d20 rolls.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    weapon_critical_threshold: int | None = Field(default=None, ge=1, le=20)
    spell_critical_threshold: int | None = Field(default=None, ge=1, le=20)
    melee_critical_damage_dice: int = Field(default=0, ge=0)
    elven_accuracy: bool = False
    halfling_lucky: bool = False


class PreparationWarning(BaseModel):
    """A problem found while preparing an owned item's derived data."""

    model_config = ConfigDict(frozen=True)

    message: str
    type: WarningType = WarningType.WARNING
    link: str | None = None


def _default_abilities() -> dict[str, AbilityScore]:
    return {key: AbilityScore() for key in ("str", "dex", "con", "int", "wis", "cha")}


class Actor(BaseModel):
    """A character or NPC that owns items.

    Attributes:
        id: Unique identifier.
        name: Display name.
        type: Character, NPC or vehicle.
        abilities: Ability scores keyed by abbreviation.
        attributes: Proficiency, spellcasting and hit points.
        details: Level, challenge rating and NPC spellcaster level.
        spells: Spell slot pools keyed ``spell1``..``spell9`` and ``pact``.
        bonuses: Global attack/damage bonuses keyed by action type.
        resources: Named numeric resources (e.g. ``primary``).
        currency: Coins by denomination.
        flags: Attack and damage traits.
        items: Owned items.
        preparation_warnings: Transient warnings from the last preparation.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex[:16], alias="_id")
    name: str = Field(min_length=1, max_length=100)
    type: ActorKind = ActorKind.CHARACTER
    abilities: dict[str, AbilityScore] = Field(default_factory=_default_abilities)
    attributes: Attributes = Field(default_factory=Attributes)
    details: Details = Field(default_factory=Details)
    spells: dict[str, SpellSlot] = Field(default_factory=dict)
    bonuses: dict[str, ActionBonus] = Field(default_factory=dict)
    resources: dict[str, Resource] = Field(default_factory=dict)
    currency: dict[str, int] = Field(default_factory=dict)
    flags: ActorFlags = Field(default_factory=ActorFlags)
    items: list[Item] = Field(default_factory=list)
    preparation_warnings: list[PreparationWarning] = Field(
        default_factory=list, exclude=True
    )

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def get_item(self, item_id: str | None) -> Item | None:
        """Find an owned item by id."""
        if not item_id:
            return None
        return next((item for item in self.items if item.id == item_id), None)

    def items_of_kind(self, kind: ItemKind) -> list[Item]:
        return [item for item in self.items if item.type == kind]

    @property
    def class_items(self) -> list[Item]:
        return self.items_of_kind(ItemKind.CLASS)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def level(self) -> int:
        """Character level: summed class levels, else ``details.level``."""
        if self.type == ActorKind.CHARACTER and self.class_items:
            return sum(item.system.levels for item in self.class_items)  # type: ignore[attr-defined]
        return self.details.level

    @property
    def proficiency_bonus(self) -> int:
        if self.attributes.prof is not None:
            return self.attributes.prof
        level = self.level
        if level < 1:
            if self.details.cr is not None:
                return max(DEFAULT_PROFICIENCY_BONUS, 2 + (math.ceil(self.details.cr) - 1) // 4)
            return DEFAULT_PROFICIENCY_BONUS
        return 2 + (level - 1) // 4

    @property
    def spellcasting_ability(self) -> str | None:
        return self.attributes.spellcasting or None

    def ability_mod(self, ability: str | None) -> int:
        if not ability or ability not in self.abilities:
            return 0
        return self.abilities[ability].mod

    def ability_dc(self, ability: str | None) -> int:
        """Save DC for an ability: 8 + proficiency + modifier."""
        return BASE_SAVE_DC + self.proficiency_bonus + self.ability_mod(ability)

    @property
    def spell_dc(self) -> int:
        return self.ability_dc(self.spellcasting_ability)

    def critical_threshold_flag(self, item_kind: ItemKind) -> int | None:
        """Actor-level critical threshold for weapons or spells."""
        if item_kind == ItemKind.WEAPON:
            return self.flags.weapon_critical_threshold
        if item_kind == ItemKind.SPELL:
            return self.flags.spell_critical_threshold
        return None

    # -------------------------------------------------------------------------
    # Preparation warnings
    # -------------------------------------------------------------------------

    def add_preparation_warning(
        self,
        message: str,
        *,
        warning_type: WarningType = WarningType.WARNING,
        link: str | None = None,
    ) -> None:
        warning = PreparationWarning(message=message, type=warning_type, link=link)
        if warning in self.preparation_warnings:
            return
        self.preparation_warnings.append(warning)
        logger.warning(
            "Preparation warning",
            actor=self.name,
            message=message,
            warning_type=str(warning_type),
        )

    def clear_preparation_warnings(self, link: str | None = None) -> None:
        """Drop all warnings, or only those linked to one item."""
        if link is None:
            self.preparation_warnings.clear()
        else:
            self.preparation_warnings[:] = [
                warning for warning in self.preparation_warnings if warning.link != link
            ]

    # -------------------------------------------------------------------------
    # Roll data
    # -------------------------------------------------------------------------

    def _class_roll_data(self) -> tuple[dict[str, Any], dict[str, dict[str, str]]]:
        classes: dict[str, Any] = {}
        scale: dict[str, dict[str, str]] = {}
        for item in self.class_items:
            system: ClassData = item.system  # type: ignore[assignment]
            identifier = item.identifier
            classes[identifier] = {
                "levels": system.levels,
                "hit_dice": system.hit_dice,
                "hit_dice_used": system.hit_dice_used,
            }
            values: dict[str, str] = {}
            for raw in item.advancement:
                try:
                    advancement = parse_advancement(raw)
                except pydantic.ValidationError:
                    continue
                if isinstance(advancement, ScaleValueAdvancement):
                    formula = advancement.formula_for_level(system.levels)
                    if formula is not None:
                        values[advancement.identifier] = formula
            if values:
                scale[identifier] = values
        return classes, scale

    def roll_data(self) -> dict[str, Any]:
        """Nested data that ``@path`` formula references resolve against.

        Returns:
            A fresh dictionary; callers may add item-specific keys.
        """
        prof = self.proficiency_bonus
        abilities = {
            key: {
                "value": score.value,
                "mod": score.mod,
                "dc": self.ability_dc(key),
                "save": score.mod + math.floor(score.proficient * prof),
            }
            for key, score in self.abilities.items()
        }
        classes, scale = self._class_roll_data()
        return {
            "abilities": abilities,
            "attributes": {
                "prof": prof,
                "spellcasting": self.attributes.spellcasting,
                "spelldc": self.spell_dc,
                "hp": self.attributes.hp.model_dump(),
            },
            "details": {
                "level": self.level,
                "cr": self.details.cr,
                "spell_level": self.details.spell_level,
            },
            "classes": classes,
            "scale": scale,
            "prof": prof,
            "bonuses": {key: bonus.model_dump() for key, bonus in self.bonuses.items()},
            "resources": {key: res.model_dump() for key, res in self.resources.items()},
            "spells": {key: slot.model_dump() for key, slot in self.spells.items()},
            "currency": dict(self.currency),
        }


__all__ = [
    "AbilityScore",
    "HitPoints",
    "Attributes",
    "Details",
    "SpellSlot",
    "Resource",
    "ActionBonus",
    "ActorFlags",
    "PreparationWarning",
    "Actor",
]
