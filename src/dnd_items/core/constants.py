"""Rules constants shared by the item usage engine."""

from __future__ import annotations

# =============================================================================
# Character Progression
# =============================================================================

MAX_CHARACTER_LEVEL = 20
"""Maximum character level in D&D 5E."""

DEFAULT_PROFICIENCY_BONUS = 2
"""Default proficiency bonus for level 1 characters."""

# =============================================================================
# Combat Constants
# =============================================================================

DEFAULT_CRITICAL_THRESHOLD = 20
"""Natural roll needed for a critical hit when nothing lowers it."""

BASE_SAVE_DC = 8
"""Base of every ability and spell save DC (8 + proficiency + modifier)."""

CANTRIP_SCALING_STEP = 6
"""Cantrips gain one extra scaling step at levels 5, 11 and 17."""

RECHARGE_DIE = "1d6"
"""Die rolled to recharge an ability (e.g. 'Recharge 5-6')."""

# =============================================================================
# Action Types
# =============================================================================

ATTACK_ACTION_TYPES = ("mwak", "rwak", "msak", "rsak")
"""Action types that make an attack roll."""

RANGED_WEAPON_TYPES = ("simpleR", "martialR")
"""Weapon types that default to dexterity."""

ELVEN_ACCURACY_ABILITIES = ("dex", "int", "wis", "cha")
"""Abilities whose advantage rolls gain a third d20 with elven accuracy."""

HIT_DICE_SORT_KEYWORDS = ("smallest", "largest")
"""Hit dice consumption targets that select a sort order instead of a die."""


__all__ = [
    "MAX_CHARACTER_LEVEL",
    "DEFAULT_PROFICIENCY_BONUS",
    "DEFAULT_CRITICAL_THRESHOLD",
    "BASE_SAVE_DC",
    "CANTRIP_SCALING_STEP",
    "RECHARGE_DIE",
    "ATTACK_ACTION_TYPES",
    "RANGED_WEAPON_TYPES",
    "ELVEN_ACCURACY_ABILITIES",
    "HIT_DICE_SORT_KEYWORDS",
]
