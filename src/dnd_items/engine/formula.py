"""Formula resolution, deterministic evaluation and display simplification.

Formulas are strings such as ``"1d20 + @mod + @prof"``. ``@path`` tokens are
resolved against nested roll data; unresolved tokens are replaced with a
fallback value and reported so callers can raise preparation warnings.
Arithmetic is evaluated with the d20 library.

Example:
    >>> evaluator = FormulaEvaluator()
    >>> evaluator.evaluate("@prof * 2", {"prof": 3}).value
    6
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable

import d20

from dnd_items.core.exceptions import FormulaError
from dnd_items.core.logging import get_logger
from dnd_items.core.utils import get_property


logger = get_logger(__name__)


FORMULA_REFERENCE = re.compile(r"@([a-z.0-9_-]+)", re.IGNORECASE)
"""Matches ``@path.to.value`` references."""

DICE_TERM = re.compile(r"(?<![a-z0-9])(\d*)d(\d+)", re.IGNORECASE)
"""Matches a dice term such as ``2d6`` or ``d20``."""

_FUNCTION_CALL = re.compile(r"\b(floor|ceil|round|abs|min|max)\s*\(", re.IGNORECASE)

_FUNCTIONS: dict[str, Callable[..., float]] = {
    "floor": lambda value: math.floor(value),
    "ceil": lambda value: math.ceil(value),
    "round": lambda value: math.floor(value + 0.5),
    "abs": abs,
    "min": min,
    "max": max,
}


@dataclass(frozen=True)
class ReplacedFormula:
    """A formula with its ``@`` references substituted.

    Attributes:
        formula: The substituted formula.
        missing_references: References that had no value in the data.
    """

    formula: str
    missing_references: tuple[str, ...] = ()


@dataclass(frozen=True)
class FormulaResult:
    """Outcome of a deterministic evaluation.

    Attributes:
        value: Numeric result.
        formula: The substituted formula that was evaluated.
        missing_references: References replaced with the fallback value.
    """

    value: int | float
    formula: str
    missing_references: tuple[str, ...] = field(default_factory=tuple)


def replace_formula_data(
    formula: str,
    data: dict[str, Any],
    *,
    missing: str | None = "0",
) -> ReplacedFormula:
    """Substitute ``@path`` references with values from roll data.

    Args:
        formula: Formula containing ``@`` references.
        data: Nested roll data.
        missing: Replacement for unresolved references; ``None`` leaves the
            token in place.

    Returns:
        The substituted formula and the unresolved reference names.
    """
    unresolved: list[str] = []

    def substitute(match: re.Match[str]) -> str:
        path = match.group(1)
        value = get_property(data, path)
        if isinstance(value, bool):
            value = int(value)
        if value is None or isinstance(value, (dict, list, tuple)):
            unresolved.append(path)
            return match.group(0) if missing is None else missing
        return str(value).strip()

    replaced = FORMULA_REFERENCE.sub(substitute, formula)
    return ReplacedFormula(formula=replaced, missing_references=tuple(unresolved))


def is_deterministic(formula: str) -> bool:
    """Whether a formula contains no dice terms."""
    return DICE_TERM.search(formula) is None


def _roll_total(expression: str, *, original: str) -> float:
    try:
        result = d20.roll(expression.strip())
    except (d20.RollError, ZeroDivisionError) as exc:
        raise FormulaError(f"Invalid formula: {exc}", formula=original) from exc
    return result.expr.total


def _literal(value: int | float) -> str:
    if float(value).is_integer():
        text = str(int(value))
    else:
        text = f"{value:.12f}".rstrip("0").rstrip(".")
    return f"({text})" if value < 0 else text


def _call_arguments(expression: str, start: int, *, original: str) -> tuple[list[str], int]:
    """Split the arguments of a call whose ``(`` ends just before ``start``.

    Returns the stripped top-level arguments and the index of the closing ``)``.
    """
    arguments: list[str] = []
    depth = 1
    argument_start = start
    for index in range(start, len(expression)):
        char = expression[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                arguments.append(expression[argument_start:index].strip())
                return arguments, index
        elif char == "," and depth == 1:
            arguments.append(expression[argument_start:index].strip())
            argument_start = index + 1
    raise FormulaError("Unbalanced parentheses", formula=original)


def _apply_functions(expression: str, *, original: str) -> str:
    while True:
        match = _FUNCTION_CALL.search(expression)
        if match is None:
            return expression
        name = match.group(1).lower()
        arguments, end = _call_arguments(expression, match.end(), original=original)
        if not any(arguments):
            raise FormulaError(f"{name}() needs an argument", formula=original)
        if not all(arguments):
            raise FormulaError(f"{name}() has an empty argument", formula=original)
        values = [_evaluate(argument, original=original) for argument in arguments]
        value = _FUNCTIONS[name](*values)
        expression = f"{expression[: match.start()]}{_literal(value)}{expression[end + 1:]}"


def _evaluate(expression: str, *, original: str) -> int | float:
    value = _roll_total(_apply_functions(expression, original=original), original=original)
    if float(value).is_integer():
        return int(value)
    return value


def evaluate_arithmetic(formula: str) -> int | float:
    """Evaluate a dice-free arithmetic formula.

    Supports ``+ - * / // %``, parentheses and the functions floor, ceil,
    round, abs, min and max.

    Args:
        formula: Formula without ``@`` references or dice.

    Returns:
        The numeric value; integral results are returned as ``int``.

    Raises:
        FormulaError: If the formula is empty, contains dice, references or
            is malformed.
    """
    expression = formula.strip()
    if not expression:
        raise FormulaError("Empty formula", formula=formula)
    if FORMULA_REFERENCE.search(expression):
        raise FormulaError("Formula has unresolved references", formula=formula)
    if not is_deterministic(expression):
        raise FormulaError("Formula is not deterministic", formula=formula)

    return _evaluate(expression, original=formula)


# =============================================================================
# Display simplification
# =============================================================================


def split_terms(formula: str) -> list[tuple[int, str]]:
    """Split a formula on top-level ``+`` and ``-`` operators.

    Args:
        formula: Formula to split.

    Returns:
        ``(sign, term)`` pairs with sign ``1`` or ``-1``.
    """
    terms: list[tuple[int, str]] = []
    depth = 0
    sign = 1
    current: list[str] = []
    previous = "+"

    for char in formula:
        if char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        if depth == 0 and char in "+-" and previous not in "*/%(":
            term = "".join(current).strip()
            if term:
                terms.append((sign, term))
                sign = 1
            if char == "-":
                sign = -sign
            current = []
            previous = char
            continue
        current.append(char)
        if not char.isspace():
            previous = char

    term = "".join(current).strip()
    if term:
        terms.append((sign, term))
    return terms


def _format_number(value: int | float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def simplify_formula(formula: str) -> str:
    """Simplify an additive formula for display.

    Constant terms are summed and placed last; dice and any other terms keep
    their order. The result is stable under repeated simplification.

    Example:
        >>> simplify_formula("0 + 3 + 1d4 + 2")
        '1d4 + 5'
    """
    constant: int | float = 0
    kept: list[tuple[int, str]] = []

    for sign, term in split_terms(formula):
        try:
            constant += sign * evaluate_arithmetic(term)
        except FormulaError:
            kept.append((sign, term))

    pieces: list[str] = []
    for sign, term in kept:
        if not pieces:
            pieces.append(term if sign > 0 else f"-{term}")
        else:
            pieces.append(f"{'+' if sign > 0 else '-'} {term}")

    if constant or not pieces:
        if not pieces:
            pieces.append(_format_number(constant))
        else:
            pieces.append(f"{'+' if constant > 0 else '-'} {_format_number(abs(constant))}")

    return " ".join(pieces)


class FormulaEvaluator:
    """Resolve references and evaluate deterministic formulas.

    Example:
        >>> FormulaEvaluator().evaluate("@missing + 2", {}).missing_references
        ('missing',)
    """

    def __init__(self, *, missing: str = "0") -> None:
        self._missing = missing

    def evaluate(self, formula: str | int | float, context: dict[str, Any]) -> FormulaResult:
        """Substitute references and evaluate.

        Args:
            formula: Formula or plain number.
            context: Roll data.

        Returns:
            The value and any references that were missing.

        Raises:
            FormulaError: If the substituted formula cannot be evaluated.
        """
        text = str(formula)
        replaced = replace_formula_data(text, context, missing=self._missing)
        value = evaluate_arithmetic(replaced.formula)
        logger.debug(
            "Formula evaluated",
            formula=text,
            value=value,
            missing=list(replaced.missing_references),
        )
        return FormulaResult(
            value=value,
            formula=replaced.formula,
            missing_references=replaced.missing_references,
        )


__all__ = [
    "FORMULA_REFERENCE",
    "DICE_TERM",
    "ReplacedFormula",
    "FormulaResult",
    "replace_formula_data",
    "is_deterministic",
    "evaluate_arithmetic",
    "split_terms",
    "simplify_formula",
    "FormulaEvaluator",
]
