"""Tests for the dotted-path and value helpers."""

from __future__ import annotations

import pytest

from dnd_items.core.utils import get_property, is_numeric, set_property, slugify


class TestIsNumeric:
    """Tests for is_numeric."""

    @pytest.mark.parametrize("value", [0, 3, -2.5, "4", " 1.5 ", "-3"])
    def test_numbers(self, value: object) -> None:
        """Finite numbers and numeric strings are numeric."""
        assert is_numeric(value) is True

    @pytest.mark.parametrize(
        "value",
        ["inf", "-Infinity", "nan", float("inf"), float("nan"), True, None, "", "@prof", "1d6"],
    )
    def test_not_numbers(self, value: object) -> None:
        """Non-finite values, booleans and formulas are not numeric."""
        assert is_numeric(value) is False


class TestDottedPaths:
    """Tests for get_property and set_property."""

    def test_get_nested(self) -> None:
        """Nested mappings and list indexes resolve; missing segments give the default."""
        data = {"abilities": {"dex": {"mod": 2}}, "parts": [["1d8", "piercing"]]}

        assert get_property(data, "abilities.dex.mod") == 2
        assert get_property(data, "parts.0.1") == "piercing"
        assert get_property(data, "abilities.str.mod", default=0) == 0

    def test_set_creates_levels(self) -> None:
        """Missing or scalar intermediate levels are replaced by mappings."""
        data: dict[str, object] = {"spells": 3}

        set_property(data, "spells.spell1.value", 2)

        assert data == {"spells": {"spell1": {"value": 2}}}


def test_slugify() -> None:
    """Display names become identifiers."""
    assert slugify("Path of the Berserker") == "path-of-the-berserker"
