"""Cantrip and upcast damage scaling.

Scaling adds a scaling formula to the first damage part a number of times:
cantrips once per tier (levels 5, 11 and 17), leveled spells once per slot
level above their base level. When the scaled formula is a single die of
the same size as the first part's leading die, the dice are merged
(``1d10`` scaled twice by ``1d10`` becomes ``3d10``).

Inputs are never mutated; a new list is returned when anything changes.
"""

from __future__ import annotations

import math
import re

from dnd_items.core.constants import CANTRIP_SCALING_STEP
from dnd_items.engine.formula import split_terms
from dnd_items.models.actor import Actor
from dnd_items.models.enums import ActorKind, SpellPreparationMode


_DIE_TERM = re.compile(
    r"^(?P<count>\d*)d(?P<faces>\d+)(?P<modifiers>[a-z][a-z0-9<>=]*)?(?P<flavor>\[[^\]]*\])?$",
    re.IGNORECASE,
)
_LEADING_DIE = re.compile(
    r"^(?P<count>\d*)d(?P<faces>\d+)(?P<modifiers>[a-z][a-z0-9<>=]*)?(?=$|[\s+\-*/\[])",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"^\d+(\.\d+)?$")


def _join_terms(terms: list[tuple[int, str]]) -> str:
    pieces: list[str] = []
    for sign, term in terms:
        if not pieces:
            pieces.append(term if sign > 0 else f"-{term}")
        else:
            pieces.append(f"{'+' if sign > 0 else '-'} {term}")
    return " ".join(pieces)


def multiply_formula(formula: str, times: int) -> str:
    """Multiply a formula by an integer.

    Dice counts and numeric terms are multiplied; any other term is wrapped
    as ``(term) * times``.

    Example:
        >>> multiply_formula("1d6 + 2", 3)
        '3d6 + 6'
    """
    multiplied: list[tuple[int, str]] = []
    for sign, term in split_terms(formula):
        die = _DIE_TERM.match(term)
        if die:
            count = int(die.group("count") or 1) * times
            term = (
                f"{count}d{die.group('faces')}"
                f"{die.group('modifiers') or ''}{die.group('flavor') or ''}"
            )
        elif _NUMBER.match(term):
            value = float(term) * times
            term = str(int(value)) if value.is_integer() else f"{value:g}"
        else:
            term = f"({term}) * {times}"
        multiplied.append((sign, term))
    return _join_terms(multiplied)


def scale_damage(parts: list[str], scaling: str, times: int) -> list[str]:
    """Add ``scaling`` to the first damage part ``times`` times.

    Args:
        parts: Damage formulas, first part scaled.
        scaling: Formula added per step.
        times: Number of steps.

    Returns:
        The scaled parts; ``parts`` itself when nothing changes.
    """
    if times <= 0 or not parts or not scaling.strip():
        return parts

    scaled = multiply_formula(scaling, times)
    scaled_terms = split_terms(scaled)
    result = list(parts)

    if len(scaled_terms) == 1 and scaled_terms[0][0] > 0:
        scaled_die = _DIE_TERM.match(scaled_terms[0][1])
        first_die = _LEADING_DIE.match(result[0].strip())
        if (
            scaled_die is not None
            and first_die is not None
            and scaled_die.group("faces") == first_die.group("faces")
            and (scaled_die.group("modifiers") or "") == (first_die.group("modifiers") or "")
        ):
            count = int(first_die.group("count") or 1) + int(scaled_die.group("count") or 1)
            first = result[0].strip()
            result[0] = (
                f"{count}d{first_die.group('faces')}"
                f"{first_die.group('modifiers') or ''}{first[first_die.end():]}"
            )
            return result

    result[0] = f"{result[0]} + {scaled}"
    return result


def cantrip_scaling_steps(level: int) -> int:
    """Extra damage steps a cantrip gains at a character level."""
    return (level + 1) // CANTRIP_SCALING_STEP


def scale_cantrip_damage(parts: list[str], formula: str, level: int) -> list[str]:
    """Scale cantrip damage for the caster's level.

    Args:
        parts: Damage formulas.
        formula: Scaling formula; defaults to all parts joined.
        level: Caster level.
    """
    add = cantrip_scaling_steps(level)
    if add == 0:
        return parts
    return scale_damage(parts, formula or " + ".join(parts), add)


def scale_spell_damage(
    parts: list[str],
    base_level: int,
    spell_level: int,
    formula: str,
) -> list[str]:
    """Scale leveled spell damage for the slot it is cast with."""
    upcast_levels = max(spell_level - base_level, 0)
    if upcast_levels == 0:
        return parts
    return scale_damage(parts, formula, upcast_levels)


def cantrip_level(actor: Actor, preparation_mode: SpellPreparationMode) -> int:
    """Level used for cantrip scaling.

    Characters use their level, innate NPC spells the rounded-up challenge
    rating, and other NPC spells the NPC's spellcaster level.
    """
    if actor.type == ActorKind.CHARACTER:
        return actor.level
    if preparation_mode == SpellPreparationMode.INNATE:
        return math.ceil(actor.details.cr or 0)
    return actor.details.spell_level


__all__ = [
    "multiply_formula",
    "scale_damage",
    "cantrip_scaling_steps",
    "scale_cantrip_damage",
    "scale_spell_damage",
    "cantrip_level",
]
