"""Tests for derived combat statistics."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_items.core.config import RulesConfig
from dnd_items.engine.derived_stats import DerivedStatCalculator, prepare_item
from dnd_items.models import Actor, Item, ItemKind, WarningType
from dnd_items.models.actor import ActionBonus


@pytest.fixture
def calculator(rules: RulesConfig) -> DerivedStatCalculator:
    """Calculator with default rules."""
    return DerivedStatCalculator(rules)


def _feat(name: str = "Feature", **system: Any) -> Item:
    return Item(name=name, type=ItemKind.FEAT, system=system)


class TestAbilityInference:
    """Tests for the inferred ability modifier."""

    def test_ranged_weapon_uses_dex(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Ranged weapons use dexterity."""
        assert calculator.ability_mod(longbow, character) == "dex"

    def test_melee_weapon_uses_str(
        self, calculator: DerivedStatCalculator, character: Actor, greataxe: Item
    ) -> None:
        """Melee weapon attacks use strength."""
        assert calculator.ability_mod(greataxe, character) == "str"

    def test_finesse_uses_higher(self, calculator: DerivedStatCalculator) -> None:
        """Finesse weapons use the higher of strength and dexterity."""
        rapier = Item(
            name="Rapier",
            type=ItemKind.WEAPON,
            system={"action_type": "mwak", "properties": {"fin": True}},
        )
        nimble = Actor(
            name="Vex",
            abilities={"str": {"value": 10}, "dex": {"value": 18}},
            items=[rapier],
        )
        strong = Actor(
            name="Grog",
            abilities={"str": {"value": 18}, "dex": {"value": 10}},
            items=[rapier],
        )

        assert calculator.ability_mod(rapier, nimble) == "dex"
        assert calculator.ability_mod(rapier, strong) == "str"

    def test_spells_use_spellcasting(
        self, calculator: DerivedStatCalculator, character: Actor, fire_bolt: Item
    ) -> None:
        """Spells use the spellcasting ability."""
        assert calculator.ability_mod(fire_bolt, character) == "int"

    def test_explicit_ability_wins(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """An explicit ability always wins."""
        item = Item(
            name="Javelin",
            type=ItemKind.WEAPON,
            system={"action_type": "rwak", "ability": "str"},
        )
        assert calculator.ability_mod(item, character) == "str"

    def test_unowned(self, calculator: DerivedStatCalculator, longbow: Item) -> None:
        """Nothing is inferred without an owner."""
        assert calculator.ability_mod(longbow, None) is None


class TestAttackToHit:
    """Tests for the attack bonus."""

    def test_proficient_weapon_with_ammo(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Ability, proficiency and ammunition bonus are summed."""
        to_hit = calculator.attack_to_hit(longbow, character)

        assert to_hit is not None
        assert to_hit.label == "+ 6"
        assert to_hit.parts == ("@mod", "@prof", "@ammo")
        assert to_hit.roll_data is not None
        assert to_hit.roll_data["ammo"] == "1"
        assert to_hit.roll_data["prof"] == 3

    def test_non_proficient_weapon(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Non-proficient weapons do not add proficiency."""
        club = Item(
            name="Greatclub",
            type=ItemKind.WEAPON,
            system={"action_type": "mwak", "weapon_type": "simpleM"},
        )
        to_hit = calculator.attack_to_hit(club, character)

        assert to_hit is not None
        assert to_hit.label == "+ 3"
        assert "@prof" not in to_hit.parts

    def test_spell_attack(
        self, calculator: DerivedStatCalculator, character: Actor, fire_bolt: Item
    ) -> None:
        """Spell attacks always add proficiency."""
        to_hit = calculator.attack_to_hit(fire_bolt, character)

        assert to_hit is not None
        assert to_hit.label == "+ 3"

    def test_actor_bonus(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Global attack bonuses for the action type are added."""
        character.bonuses["rwak"] = ActionBonus(attack="1d4")

        to_hit = calculator.attack_to_hit(longbow, character)

        assert to_hit is not None
        assert to_hit.label == "+ 1d4 + 6"

    def test_ammo_bonus_needs_ammunition(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item, arrows: Item
    ) -> None:
        """Spent ammunition adds no bonus."""
        arrows.system.quantity = 0

        to_hit = calculator.attack_to_hit(longbow, character)

        assert to_hit is not None
        assert to_hit.label == "+ 5"

    def test_unowned(self, calculator: DerivedStatCalculator) -> None:
        """Unowned items only show their own bonus."""
        bow = Item(
            name="Bow +2",
            type=ItemKind.WEAPON,
            system={"action_type": "rwak", "attack_bonus": "2"},
        )
        to_hit = calculator.attack_to_hit(bow, None)

        assert to_hit is not None
        assert to_hit.label == "+ 2"
        assert to_hit.roll_data is None

    def test_no_attack(
        self, calculator: DerivedStatCalculator, character: Actor, healing_potion: Item
    ) -> None:
        """Items without attacks have no attack bonus."""
        assert calculator.attack_to_hit(healing_potion, character) is None

    def test_simplification_stable(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Preparing twice gives the same label."""
        first = calculator.prepare(longbow, character).to_hit
        second = calculator.prepare(longbow, character).to_hit

        assert first == second == "+ 6"


class TestCriticalThreshold:
    """Tests for the critical threshold."""

    def test_lowest_threshold_wins(self, calculator: DerivedStatCalculator) -> None:
        """Item 19, actor 18 and ammunition 20 give 18."""
        bolts = Item(
            name="Bolts",
            type=ItemKind.CONSUMABLE,
            system={"consumable_type": "ammo", "quantity": 10, "critical": {"threshold": 20}},
        )
        crossbow = Item(
            name="Crossbow",
            type=ItemKind.WEAPON,
            system={
                "action_type": "rwak",
                "critical": {"threshold": 19},
                "consume": {"type": "ammo", "target": bolts.id, "amount": 1},
            },
        )
        champion = Actor(
            name="Champion",
            flags={"weapon_critical_threshold": 18},
            items=[crossbow, bolts],
        )

        assert calculator.critical_threshold(crossbow, champion) == 18

    def test_default(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """The rules threshold applies when nothing lowers it."""
        assert calculator.critical_threshold(longbow, character) == 20
        assert DerivedStatCalculator(RulesConfig(critical_threshold=19)).critical_threshold(
            longbow, character
        ) == 19

    def test_no_attack(
        self, calculator: DerivedStatCalculator, character: Actor, fireball: Item
    ) -> None:
        """Items without attacks have no threshold."""
        assert calculator.critical_threshold(fireball, character) is None


class TestSaveDC:
    """Tests for save DCs."""

    def test_spell_scaling(
        self, calculator: DerivedStatCalculator, character: Actor, fireball: Item
    ) -> None:
        """Spell scaling uses the actor's spell DC."""
        assert calculator.save_dc(fireball, character) == 11
        assert calculator.save_dc(fireball, None) is None

    def test_ability_scaling(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Ability scaling uses that ability's DC."""
        feat = _feat(save={"ability": "con", "scaling": "con"})
        assert calculator.save_dc(feat, character) == 13

    def test_flat(self, calculator: DerivedStatCalculator) -> None:
        """Flat scaling uses the stored DC, even unowned."""
        feat = _feat(save={"ability": "wis", "dc": 15, "scaling": "flat"})
        assert calculator.save_dc(feat, None) == 15


class TestFormulaProperties:
    """Tests for max uses and duration formulas."""

    def test_max_uses_formula(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Formula max uses resolve against the owner."""
        feat = _feat(uses={"value": 1, "max": "@abilities.con.mod + 1", "per": "lr"})
        assert calculator.max_uses(feat, character) == 3

    @pytest.mark.parametrize(
        "formula,expected",
        [
            ("max(1, @abilities.cha.mod)", 1),
            ("max(1, @abilities.con.mod)", 2),
            ("floor((@details.level + 1) / 2)", 3),
        ],
    )
    def test_max_uses_functions(
        self,
        calculator: DerivedStatCalculator,
        character: Actor,
        formula: str,
        expected: int,
    ) -> None:
        """Function calls with references and nested parentheses resolve."""
        feat = _feat(name="Inspire", uses={"max": formula, "per": "lr"})

        assert calculator.max_uses(feat, character) == expected
        assert character.preparation_warnings == []

    def test_max_uses_not_finite(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Infinite max uses are malformed, not numeric."""
        feat = _feat(name="Endless", uses={"max": "inf", "per": "lr"})

        assert calculator.max_uses(feat, character) == 0
        assert character.preparation_warnings[-1].type == WarningType.ERROR

    def test_max_uses_numeric(self, calculator: DerivedStatCalculator) -> None:
        """Numeric max uses need no owner; formulas do."""
        assert calculator.max_uses(_feat(uses={"max": "3"}), None) == 3
        assert calculator.max_uses(_feat(uses={"max": "@prof"}), None) is None
        assert calculator.max_uses(_feat(), None) is None

    def test_missing_reference_warns(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Missing references resolve to 0 with a warning."""
        feat = _feat(name="Rage", uses={"max": "@classes.barbarian.levels"})

        assert calculator.max_uses(feat, character) == 0
        warning = character.preparation_warnings[-1]
        assert warning.type == WarningType.WARNING
        assert "@classes.barbarian.levels" in warning.message
        assert warning.link == feat.id

    def test_malformed_formula_errors(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Malformed formulas resolve to 0 with an error."""
        feat = _feat(name="Broken", uses={"max": "2 +"})

        assert calculator.max_uses(feat, character) == 0
        assert character.preparation_warnings[-1].type == WarningType.ERROR

    def test_duration(self, calculator: DerivedStatCalculator, character: Actor) -> None:
        """Duration formulas resolve; instantaneous has no value."""
        assert calculator.duration_value(
            _feat(duration={"value": "@prof", "units": "round"}), character
        ) == 3
        assert calculator.duration_value(_feat(duration={"value": 10, "units": "minute"}), None) == 10
        assert calculator.duration_value(_feat(duration={"value": "@prof", "units": "round"}), None) is None
        assert calculator.duration_value(_feat(duration={"value": 1, "units": "inst"}), character) is None


class TestDerivedDamage:
    """Tests for display damage."""

    def test_simplified(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Damage formulas resolve and simplify."""
        (damage,) = calculator.derived_damage(longbow, character)

        assert damage.formula == "1d8 + 2"
        assert damage.damage_type == "piercing"
        assert damage.label == "1d8 + 2 Piercing"

    def test_unowned(self, calculator: DerivedStatCalculator, longbow: Item) -> None:
        """Unowned items have no derived damage."""
        assert calculator.derived_damage(longbow, None) == ()


class TestLabels:
    """Tests for display labels."""

    def test_spell_labels(
        self, calculator: DerivedStatCalculator, character: Actor, fireball: Item
    ) -> None:
        """Spells get level, school, components and save labels."""
        labels = calculator.prepare(fireball, character).labels

        assert labels.activation == "1 Action"
        assert labels.target == "20 Feet Sphere"
        assert labels.range == "150 Feet"
        assert labels.duration == "Instantaneous"
        assert labels.damage == "8d6"
        assert labels.damage_types == "Fire"
        assert labels.save == "DC 11 Dexterity"
        assert labels.level == "3rd Level"
        assert labels.school == "Evocation"
        assert labels.components == "V, S, M"
        assert labels.component_tags == ()
        assert labels.materials == "A tiny ball of bat guano and sulfur"

    def test_weapon_labels(
        self, calculator: DerivedStatCalculator, character: Actor, longbow: Item
    ) -> None:
        """Weapons get range and attack labels."""
        labels = calculator.prepare(longbow, character).labels

        assert labels.range == "150 / 600 Feet"
        assert labels.to_hit == "+ 6"
        assert labels.damage_types == "Piercing"

    @pytest.mark.parametrize("value,expected", [(5, "Recharge [5+]"), (6, "Recharge [6]")])
    def test_recharge(self, calculator: DerivedStatCalculator, value: int, expected: str) -> None:
        """Recharge labels show the minimum roll."""
        labels = calculator.prepare(_feat(recharge={"value": value})).labels
        assert labels.recharge == expected

    def test_self_target(self, calculator: DerivedStatCalculator) -> None:
        """Self targets drop their value and units."""
        labels = calculator.prepare(_feat(target={"value": 5, "units": "self", "type": "self"})).labels
        assert labels.target == "Self"

    @pytest.mark.parametrize(
        "system,expected",
        [
            ({}, "Passive"),
            ({"activation": {"type": "action"}}, "Action"),
            ({"activation": {"type": "action"}, "damage": {"parts": [["1d6", "fire"]]}}, "Attack"),
            ({"activation": {"type": "legendary"}}, "Legendary Action"),
            ({"activation": {"type": "lair"}}, "Lair Action"),
        ],
    )
    def test_feat_type(
        self, calculator: DerivedStatCalculator, system: dict[str, Any], expected: str
    ) -> None:
        """Feats are labelled by their activation."""
        assert calculator.prepare(_feat(**system)).labels.feat_type == expected

    def test_armor(self, calculator: DerivedStatCalculator) -> None:
        """Armor shows its armor class."""
        plate = Item(name="Plate", type=ItemKind.EQUIPMENT, system={"armor_value": 18})
        assert calculator.prepare(plate).labels.armor == "18 AC"


class TestClassLinks:
    """Tests for class and subclass links and scale values."""

    @pytest.fixture
    def champion(self) -> Item:
        """Champion subclass of the fighter."""
        return Item(
            name="Champion",
            type=ItemKind.SUBCLASS,
            system={"class_identifier": "fighter"},
            advancement=[
                {
                    "_id": "crit",
                    "type": "ScaleValue",
                    "configuration": {
                        "identifier": "critical-range",
                        "scale": {"3": {"value": 19}, "15": {"value": 18}},
                    },
                }
            ],
        )

    def test_links(
        self,
        calculator: DerivedStatCalculator,
        character: Actor,
        fighter_class: Item,
        champion: Item,
    ) -> None:
        """Classes and subclasses find each other among the owner's items."""
        character.items.append(champion)

        assert calculator.prepare(champion, character).class_link is fighter_class
        assert calculator.prepare(fighter_class, character).class_link is champion

    def test_scale_values(
        self,
        calculator: DerivedStatCalculator,
        character: Actor,
        fighter_class: Item,
        champion: Item,
    ) -> None:
        """Scale values follow the class level."""
        character.items.append(champion)

        assert calculator.prepare(fighter_class, character).scale_values == {
            "second-wind": {"value": 2},
            "superiority-die": {"n": 1, "die": 8},
        }
        assert calculator.prepare(champion, character).scale_values == {
            "critical-range": {"value": 19}
        }

    def test_unlinked_subclass(
        self, calculator: DerivedStatCalculator, champion: Item
    ) -> None:
        """Without the class, subclass scale values are not reached."""
        prepared = calculator.prepare(champion)

        assert prepared.class_link is None
        assert prepared.scale_values == {"critical-range": None}


class TestPrepare:
    """Tests for full preparation."""

    def test_prepared_snapshot(
        self, calculator: DerivedStatCalculator, character: Actor, fireball: Item
    ) -> None:
        """A prepared item exposes its derived values."""
        prepared = calculator.prepare(fireball, character)

        assert prepared.owned is True
        assert prepared.id == fireball.id
        assert prepared.type == ItemKind.SPELL
        assert prepared.save_dc == 11
        assert prepared.has_area_target is True
        assert prepared.roll_data is not None
        assert prepared.roll_data["item"]["level"] == 3

    def test_limited_uses(
        self,
        calculator: DerivedStatCalculator,
        character: Actor,
        healing_potion: Item,
        longbow: Item,
    ) -> None:
        """Limited uses need a recovery period with uses, or a recharge."""
        assert calculator.prepare(healing_potion, character).has_limited_uses is True
        assert calculator.prepare(longbow, character).has_limited_uses is False
        assert calculator.prepare(_feat(recharge={"value": 5})).has_limited_uses is True

    def test_prepare_actor_clears_warnings(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Each pass starts with no warnings."""
        character.add_preparation_warning("Stale warning")

        prepared = calculator.prepare_actor(character)

        assert set(prepared) == {item.id for item in character.items}
        assert character.preparation_warnings == []

    def test_repeated_prepare_replaces_item_warnings(
        self, calculator: DerivedStatCalculator, character: Actor
    ) -> None:
        """Preparing an item again replaces its warnings instead of adding more."""
        feat = _feat(name="Rage", uses={"max": "@missing.thing", "per": "lr"})
        character.items.append(feat)
        character.add_preparation_warning("Unrelated", link="other")

        for _ in range(3):
            calculator.prepare(feat, character)

        assert [warning.link for warning in character.preparation_warnings] == ["other", feat.id]

    def test_prepare_item_unowned(self, longbow: Item) -> None:
        """The module helper prepares with default rules."""
        prepared = prepare_item(longbow)

        assert prepared.owned is False
        assert prepared.roll_data is None
        assert prepared.critical_threshold == 20
