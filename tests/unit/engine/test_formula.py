"""Tests for formula resolution and simplification."""

from __future__ import annotations

import pytest

from dnd_items.core.exceptions import FormulaError
from dnd_items.engine.formula import (
    FormulaEvaluator,
    evaluate_arithmetic,
    is_deterministic,
    replace_formula_data,
    simplify_formula,
    split_terms,
)


class TestReplaceFormulaData:
    """Tests for @ reference substitution."""

    def test_nested_paths(self) -> None:
        """References resolve through nested data."""
        data = {"abilities": {"dex": {"mod": 2}}, "prof": 3}
        replaced = replace_formula_data("1d20 + @abilities.dex.mod + @prof", data)

        assert replaced.formula == "1d20 + 2 + 3"
        assert replaced.missing_references == ()

    def test_missing_reference(self) -> None:
        """Missing references become 0 and are reported."""
        replaced = replace_formula_data("@classes.rogue.levels + 1", {})

        assert replaced.formula == "0 + 1"
        assert replaced.missing_references == ("classes.rogue.levels",)

    def test_non_scalar_is_missing(self) -> None:
        """Mappings cannot be substituted."""
        replaced = replace_formula_data("@abilities", {"abilities": {"str": {}}})

        assert replaced.missing_references == ("abilities",)

    def test_keep_missing_token(self) -> None:
        """missing=None leaves unresolved tokens in place."""
        replaced = replace_formula_data("@foo + 1", {}, missing=None)

        assert replaced.formula == "@foo + 1"

    def test_formula_values(self) -> None:
        """String values such as scale dice are substituted as-is."""
        replaced = replace_formula_data("@scale.rogue.sneak", {"scale": {"rogue": {"sneak": "2d6"}}})

        assert replaced.formula == "2d6"


class TestEvaluateArithmetic:
    """Tests for deterministic evaluation."""

    @pytest.mark.parametrize(
        "formula,expected",
        [
            ("2 + 3 * 4", 14),
            ("(2 + 3) * 4", 20),
            ("10 - 12", -2),
            ("max(1, 4) + 2", 6),
            ("min(3, 5)", 3),
            ("abs(-3)", 3),
            ("max(1, 3)", 3),
            ("floor((5 + 1) / 2)", 3),
            ("max(1, min(2, 7)) * 2", 4),
            ("max(-4, floor(-1 / 2)) + 1", 0),
            ("ceil(7 / 2) + round(2.5)", 7),
        ],
    )
    def test_values(self, formula: str, expected: int) -> None:
        """Arithmetic and functions evaluate to numbers."""
        assert evaluate_arithmetic(formula) == expected

    @pytest.mark.parametrize(
        "formula",
        ["", "   ", "1d6 + 2", "@prof", "2 +", "max()", "max(1, )", "floor((3 + 1)"],
    )
    def test_invalid(self, formula: str) -> None:
        """Empty, random, unresolved and malformed formulas are rejected."""
        with pytest.raises(FormulaError):
            evaluate_arithmetic(formula)

    def test_is_deterministic(self) -> None:
        """Dice terms make a formula non-deterministic."""
        assert is_deterministic("2 + @prof") is True
        assert is_deterministic("d20 + 1") is False


class TestSimplifyFormula:
    """Tests for display simplification."""

    @pytest.mark.parametrize(
        "formula,expected",
        [
            ("0 + 3 + 1d4 + 2", "1d4 + 5"),
            ("2 + 3 + 1", "6"),
            ("1d20 - 2 + 1", "1d20 - 1"),
            ("3 - 5", "-2"),
            ("2 + -1", "1"),
            ("1d8 + 1d6", "1d8 + 1d6"),
            ("", "0"),
        ],
    )
    def test_simplify(self, formula: str, expected: str) -> None:
        """Constants are summed and placed last."""
        assert simplify_formula(formula) == expected

    @pytest.mark.parametrize(
        "formula",
        ["2 + 3 + 1d4", "1d20 - 2 + 1", "-1 + 1d6 + 2 * 3", "1d8 + (2 + 1d4)"],
    )
    def test_idempotent(self, formula: str) -> None:
        """Simplifying twice gives the same result."""
        once = simplify_formula(formula)
        assert simplify_formula(once) == once

    def test_split_terms_respects_parentheses(self) -> None:
        """Operators inside parentheses and flavor brackets do not split."""
        assert split_terms("1d8 + (2 - 1) - 1d4[fire-ish]") == [
            (1, "1d8"),
            (1, "(2 - 1)"),
            (-1, "1d4[fire-ish]"),
        ]


class TestFormulaEvaluator:
    """Tests for the FormulaEvaluator."""

    def test_evaluate(self) -> None:
        """References are substituted before evaluation."""
        result = FormulaEvaluator().evaluate("@prof * 2", {"prof": 3})

        assert result.value == 6
        assert result.formula == "3 * 2"

    def test_missing_reported(self) -> None:
        """Missing references are reported with the value."""
        result = FormulaEvaluator().evaluate("@missing + 2", {})

        assert result.value == 2
        assert result.missing_references == ("missing",)

    def test_numbers(self) -> None:
        """Plain numbers evaluate to themselves."""
        assert FormulaEvaluator().evaluate(4, {}).value == 4
