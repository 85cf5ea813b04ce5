"""Enumeration types for the item usage engine.

This module defines the tags used throughout item and actor data:
item kinds, action types, consumption targets, advancement kinds, and
the result codes reported by the usage resolver.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores, keyed by their stored abbreviation."""

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"

    @property
    def abbreviation(self) -> str:
        """Get the upper-case abbreviation (e.g. 'DEX')."""
        return self.name


class ItemKind(StrEnum):
    """Item document types."""

    WEAPON = "weapon"
    SPELL = "spell"
    EQUIPMENT = "equipment"
    FEAT = "feat"
    CONSUMABLE = "consumable"
    TOOL = "tool"
    LOOT = "loot"
    CLASS = "class"
    SUBCLASS = "subclass"
    BACKGROUND = "background"

    @property
    def has_advancement_from_level_one(self) -> bool:
        """Whether advancement buckets start at level 1 instead of 0."""
        return self in (ItemKind.CLASS, ItemKind.SUBCLASS)


class ActorKind(StrEnum):
    """Actor document types."""

    CHARACTER = "character"
    NPC = "npc"
    VEHICLE = "vehicle"


class ActionType(StrEnum):
    """What an item does when used."""

    MELEE_WEAPON_ATTACK = "mwak"
    RANGED_WEAPON_ATTACK = "rwak"
    MELEE_SPELL_ATTACK = "msak"
    RANGED_SPELL_ATTACK = "rsak"
    SAVING_THROW = "save"
    HEALING = "heal"
    ABILITY_CHECK = "abil"
    UTILITY = "util"
    OTHER = "other"

    @property
    def is_attack(self) -> bool:
        """Whether this action type makes an attack roll."""
        return self in (
            ActionType.MELEE_WEAPON_ATTACK,
            ActionType.RANGED_WEAPON_ATTACK,
            ActionType.MELEE_SPELL_ATTACK,
            ActionType.RANGED_SPELL_ATTACK,
        )

    @property
    def is_spell_attack(self) -> bool:
        return self in (ActionType.MELEE_SPELL_ATTACK, ActionType.RANGED_SPELL_ATTACK)


class ConsumeType(StrEnum):
    """Kinds of linked resource an item can consume."""

    AMMO = "ammo"
    ATTRIBUTE = "attribute"
    HIT_DICE = "hitDice"
    MATERIAL = "material"
    CHARGES = "charges"


class AdvancementKind(StrEnum):
    """Advancement type tags."""

    HIT_POINTS = "HitPoints"
    ABILITY_SCORE_IMPROVEMENT = "AbilityScoreImprovement"
    ITEM_GRANT = "ItemGrant"
    ITEM_CHOICE = "ItemChoice"
    SCALE_VALUE = "ScaleValue"


class SpellPreparationMode(StrEnum):
    """How a spell is made available to its caster."""

    PREPARED = "prepared"
    PACT = "pact"
    ALWAYS = "always"
    AT_WILL = "atwill"
    INNATE = "innate"


class DamageScalingMode(StrEnum):
    """How a spell's damage grows."""

    NONE = "none"
    CANTRIP = "cantrip"
    LEVEL = "level"


class FailureReason(StrEnum):
    """Why a usage attempt could not be resolved."""

    NO_USES = "no_uses"
    NO_RESOURCE_TARGET = "no_resource_target"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INSUFFICIENT_RESOURCE = "insufficient_resource"
    NO_SPELL_SLOTS = "no_spell_slots"
    NOT_OWNED = "not_owned"


class UsageOutcome(StrEnum):
    """Final state of an item use."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class NotificationKind(StrEnum):
    """Severity of a user-facing notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class WarningType(StrEnum):
    """Severity of a preparation warning."""

    WARNING = "warning"
    ERROR = "error"


class RollMode(StrEnum):
    """Advantage state of a d20 roll."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


__all__ = [
    "Ability",
    "ItemKind",
    "ActorKind",
    "ActionType",
    "ConsumeType",
    "AdvancementKind",
    "SpellPreparationMode",
    "DamageScalingMode",
    "FailureReason",
    "UsageOutcome",
    "NotificationKind",
    "WarningType",
    "RollMode",
]
