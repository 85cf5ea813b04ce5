"""Dice rolling mechanics backed by the d20 library.

``D20RollEngine`` is the default ``RollEngine``: it resolves ``@`` references
in a formula, applies advantage and disadvantage to the leading d20 (with
elven accuracy and halfling luck), detects critical hits against a
threshold, and builds critical damage formulas.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Any

import d20

from dnd_items.core.constants import DEFAULT_CRITICAL_THRESHOLD
from dnd_items.core.exceptions import DiceRollError
from dnd_items.core.logging import get_logger
from dnd_items.engine.formula import DICE_TERM, replace_formula_data
from dnd_items.models.enums import RollMode


logger = get_logger(__name__)


_D20_TERM = re.compile(r"(?<![a-z0-9])1?d20(?![0-9])", re.IGNORECASE)


@dataclass(frozen=True)
class RollOptions:
    """Options for one roll.

    Attributes:
        mode: Advantage state of the leading d20.
        critical_threshold: Natural d20 result that counts as a critical hit.
        elven_accuracy: Roll three d20s instead of two on advantage.
        halfling_lucky: Reroll a natural 1 once.
        critical: Roll damage as a critical hit (dice doubled).
        critical_bonus_dice: Extra dice of the first die term on a critical.
        critical_bonus_damage: Extra formula added on a critical.
    """

    mode: RollMode = RollMode.NORMAL
    critical_threshold: int | None = None
    elven_accuracy: bool = False
    halfling_lucky: bool = False
    critical: bool = False
    critical_bonus_dice: int = 0
    critical_bonus_damage: str = ""


@dataclass(frozen=True)
class RollOutcome:
    """Result of a roll.

    Attributes:
        formula: The formula actually rolled.
        total: The total result.
        terms: Kept die results in roll order.
        is_critical: Whether the natural d20 met the critical threshold, or
            the roll was a critical damage roll.
        is_fumble: Whether the natural d20 was a 1.
        mode: Advantage state used.
    """

    formula: str
    total: int
    terms: list[int] = field(default_factory=list)
    is_critical: bool = False
    is_fumble: bool = False
    mode: RollMode = RollMode.NORMAL


def _d20_term(options: RollOptions) -> str:
    reroll = "ro1" if options.halfling_lucky else ""
    if options.mode == RollMode.ADVANTAGE:
        count = 3 if options.elven_accuracy else 2
        return f"{count}d20{reroll}kh1"
    if options.mode == RollMode.DISADVANTAGE:
        return f"2d20{reroll}kl1"
    return f"1d20{reroll}"


def critical_formula(formula: str, *, bonus_dice: int = 0, bonus_damage: str = "") -> str:
    """Build the formula rolled on a critical hit.

    Every dice count is doubled, the first die term gains ``bonus_dice``
    extra dice, and ``bonus_damage`` is appended.

    Example:
        >>> critical_formula("1d8 + 3", bonus_dice=1)
        '3d8 + 3'
    """
    first = True

    def double(match: re.Match[str]) -> str:
        nonlocal first
        count = int(match.group(1) or 1) * 2
        if first:
            count += bonus_dice
            first = False
        return f"{count}d{match.group(2)}"

    doubled = DICE_TERM.sub(double, formula)
    if bonus_damage:
        doubled = f"{doubled} + {bonus_damage}"
    return doubled


class D20RollEngine:
    """Roll engine using the d20 library.

    Example:
        >>> engine = D20RollEngine(seed=7)
        >>> outcome = engine.roll("1d20 + @mod", {"mod": 3})
        >>> 4 <= outcome.total <= 23
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the roll engine.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("D20RollEngine initialized", seed=seed)

    def roll(
        self,
        formula: str,
        context: dict[str, Any] | None = None,
        options: RollOptions | None = None,
    ) -> RollOutcome:
        """Roll a formula.

        Args:
            formula: Formula, may contain ``@`` references.
            context: Roll data for references; missing ones count as 0.
            options: Advantage, critical and reroll options.

        Returns:
            The roll outcome.

        Raises:
            DiceRollError: If the formula is empty or invalid.
        """
        options = options or RollOptions()
        if not formula or not formula.strip():
            raise DiceRollError("Empty dice expression", expression=formula)

        expression = replace_formula_data(formula, context or {}).formula
        is_d20_roll = _D20_TERM.search(expression) is not None
        if is_d20_roll:
            expression = _D20_TERM.sub(_d20_term(options), expression, count=1)
        elif options.critical:
            expression = critical_formula(
                expression,
                bonus_dice=options.critical_bonus_dice,
                bonus_damage=options.critical_bonus_damage,
            )

        logger.debug("Rolling dice", expression=expression, mode=str(options.mode))

        try:
            result = d20.roll(expression)
        except (d20.RollError, ZeroDivisionError) as exc:
            raise DiceRollError(
                f"Invalid dice expression: {exc}",
                expression=expression,
            ) from exc

        terms = self._extract_dice_values(result.expr)
        is_critical = options.critical
        is_fumble = False
        if is_d20_roll:
            natural = self._natural_d20(result.expr)
            threshold = options.critical_threshold or DEFAULT_CRITICAL_THRESHOLD
            if natural is not None:
                is_critical = natural >= threshold
                is_fumble = natural == 1

        outcome = RollOutcome(
            formula=expression,
            total=result.total,
            terms=terms,
            is_critical=is_critical,
            is_fumble=is_fumble,
            mode=options.mode,
        )
        logger.info(
            "Dice rolled",
            expression=expression,
            total=outcome.total,
            is_critical=is_critical,
        )
        return outcome

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Extract kept die values from a d20 expression tree."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if die.kept:
                        values.append(int(die.number))
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def _natural_d20(self, expr: Any) -> int | None:
        """Kept result of the first d20 in the expression tree."""
        found: list[int] = []

        def traverse(node: Any) -> None:
            if found:
                return
            if isinstance(node, d20.Dice):
                if node.size == 20:
                    kept = [int(die.number) for die in node.values if die.kept]
                    if kept:
                        found.append(kept[0])
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return found[0] if found else None


__all__ = [
    "RollOptions",
    "RollOutcome",
    "critical_formula",
    "D20RollEngine",
]
