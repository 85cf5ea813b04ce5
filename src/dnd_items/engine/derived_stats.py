"""Derived combat statistics for items.

Every preparation pass turns an ``Item`` (and its owning ``Actor``, if any)
into a read-only ``PreparedItem`` holding the derived numbers and display
labels: inferred ability, attack bonus, save DC, critical threshold,
prepared max uses and duration, derived damage, advancement index, class
link and scale values.

Formula problems during preparation never raise. Missing ``@`` references
are replaced with 0 and reported as warnings on the actor; malformed
formulas are reported as errors and the value resolves to 0.

Example:
    >>> calculator = DerivedStatCalculator(RulesConfig())
    >>> prepared = calculator.prepare(longbow, actor)
    >>> prepared.to_hit
    '+ 6'
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dnd_items.core.config import RulesConfig
from dnd_items.core.constants import RANGED_WEAPON_TYPES
from dnd_items.core.exceptions import FormulaError
from dnd_items.core.logging import get_logger
from dnd_items.core.utils import is_numeric
from dnd_items.engine.advancement_index import AdvancementIndex
from dnd_items.engine.formula import (
    evaluate_arithmetic,
    replace_formula_data,
    simplify_formula,
)
from dnd_items.models.actor import Actor
from dnd_items.models.advancement import ScaleValueAdvancement
from dnd_items.models.enums import (
    ActionType,
    AdvancementKind,
    ConsumeType,
    ItemKind,
    WarningType,
)
from dnd_items.models.item import Item


logger = get_logger(__name__)


_ACTION_TYPE_ABILITY = {
    ActionType.MELEE_WEAPON_ATTACK: "str",
    ActionType.RANGED_WEAPON_ATTACK: "dex",
}


def _join(*parts: Any) -> str:
    rendered = []
    for part in parts:
        if part is None or part == "":
            continue
        if isinstance(part, float) and part.is_integer():
            part = int(part)
        rendered.append(str(part))
    return " ".join(rendered)


def _signed(formula: str) -> str:
    return formula if formula[:1] in ("+", "-") else f"+ {formula}"


@dataclass(frozen=True)
class Proficiency:
    """Proficiency multiplier applied to the actor's proficiency bonus."""

    bonus: int
    multiplier: float

    @property
    def term(self) -> int:
        return math.floor(self.multiplier * self.bonus)

    @property
    def has_proficiency(self) -> bool:
        return self.multiplier > 0


@dataclass(frozen=True)
class AttackToHit:
    """Attack bonus of an item.

    Attributes:
        label: Simplified display formula, always signed (``"+ 5"``).
        parts: Unresolved formula parts in order.
        roll_data: Roll data the parts resolve against; None when unowned.
    """

    label: str | None
    parts: tuple[str, ...]
    roll_data: dict[str, Any] | None


@dataclass(frozen=True)
class DerivedDamage:
    formula: str | None
    damage_type: str
    label: str


class ItemLabels(BaseModel):
    """Display labels of a prepared item."""

    model_config = ConfigDict(frozen=True)

    activation: str = ""
    target: str = ""
    range: str = ""
    recharge: str = ""
    duration: str = ""
    damage: str = ""
    damage_types: str = ""
    save: str = ""
    to_hit: str = ""
    ability_check: str = ""
    level: str = ""
    school: str = ""
    components: str = ""
    component_tags: tuple[str, ...] = ()
    materials: str = ""
    armor: str = ""
    feat_type: str = ""


class PreparedItem(BaseModel):
    """Read-only snapshot of an item's derived data.

    Attributes:
        item: The source item.
        owned: Whether the item was prepared against an owning actor.
        ability_mod: Inferred ability abbreviation.
        proficiency: Proficiency multiplier and term; None when unowned.
        roll_data: Roll data for formulas; None when unowned.
        to_hit: Signed attack bonus label; None without an attack.
        attack_parts: Unresolved attack bonus parts.
        attack_roll_data: Roll data for ``attack_parts`` (ammo, prof term).
        save_dc: Save DC; None without a save or when unowned and scaled.
        critical_threshold: Critical threshold; None without an attack.
        max_uses: Prepared maximum uses.
        duration_value: Prepared duration value.
        derived_damage: Simplified damage formulas per part.
        labels: Display labels.
        advancement: Advancement index.
        class_link: Linked class (for a subclass) or subclass (for a class).
        scale_values: Scale value records by identifier for the class level.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    item: Item
    owned: bool = False
    ability_mod: str | None = None
    proficiency: Proficiency | None = None
    roll_data: dict[str, Any] | None = None
    to_hit: str | None = None
    attack_parts: tuple[str, ...] = ()
    attack_roll_data: dict[str, Any] | None = None
    save_dc: int | None = None
    critical_threshold: int | None = None
    max_uses: int | None = None
    duration_value: int | float | None = None
    derived_damage: tuple[DerivedDamage, ...] = ()
    labels: ItemLabels = Field(default_factory=ItemLabels)
    advancement: AdvancementIndex = Field(default_factory=AdvancementIndex)
    class_link: Item | None = None
    scale_values: dict[str, dict[str, Any] | None] = Field(default_factory=dict)
    has_area_target: bool = False

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def type(self) -> ItemKind:
        return self.item.type

    @property
    def system(self) -> Any:
        return self.item.system

    @property
    def has_attack(self) -> bool:
        return self.item.has_attack

    @property
    def has_damage(self) -> bool:
        return self.item.has_damage

    @property
    def has_save(self) -> bool:
        return self.item.has_save

    @property
    def has_limited_uses(self) -> bool:
        """Recharge value set, or a recovery period with positive max uses."""
        recharge = getattr(self.system, "recharge", None)
        uses = getattr(self.system, "uses", None)
        if recharge is not None and recharge.value:
            return True
        return bool(uses and uses.per and (self.max_uses or 0) > 0)


class DerivedStatCalculator:
    """Computes derived statistics and labels for items.

    Args:
        rules: Rules tables used for labels and thresholds.
    """

    def __init__(self, rules: RulesConfig) -> None:
        self.rules = rules

    # -------------------------------------------------------------------------
    # Ability, proficiency and roll data
    # -------------------------------------------------------------------------

    def ability_mod(self, item: Item, actor: Actor | None) -> str | None:
        """Infer which ability modifier an item uses.

        An explicit ability always wins. Without an owner nothing else can
        be inferred.
        """
        system = item.system
        explicit = getattr(system, "ability", None)
        if explicit:
            return explicit
        if actor is None:
            return None

        spellcasting = actor.spellcasting_ability or "int"
        match item.type:
            case ItemKind.CONSUMABLE if system.consumable_type == "scroll":
                return spellcasting
            case ItemKind.SPELL:
                return spellcasting
            case ItemKind.TOOL:
                return "int"
            case ItemKind.WEAPON:
                if system.properties.get("fin") is True:
                    dex = actor.ability_mod("dex")
                    return "dex" if dex >= actor.ability_mod("str") else "str"
                if system.weapon_type in RANGED_WEAPON_TYPES:
                    return "dex"

        if item.has_attack:
            if item.action_type.is_spell_attack:
                return spellcasting
            return _ACTION_TYPE_ABILITY[item.action_type]
        return None

    def proficiency(self, item: Item, actor: Actor | None) -> Proficiency | None:
        if actor is None or not actor.proficiency_bonus:
            return None
        if item.type == ItemKind.SPELL:
            multiplier: float = 1
        else:
            multiplier = float(getattr(item.system, "proficient", 0) or 0)
        return Proficiency(bonus=actor.proficiency_bonus, multiplier=multiplier)

    def roll_data(self, item: Item, actor: Actor | None) -> dict[str, Any] | None:
        """Actor roll data plus ``item`` (system data) and ``mod``."""
        if actor is None:
            return None
        data = actor.roll_data()
        data["item"] = item.system.model_dump()
        ability = self.ability_mod(item, actor)
        if ability:
            ability_data = data["abilities"].get(ability)
            if ability_data is None:
                logger.warning(
                    "Item has an invalid ability modifier",
                    item=item.name,
                    actor=actor.name,
                    ability=ability,
                )
            data["mod"] = ability_data["mod"] if ability_data else 0
        return data

    # -------------------------------------------------------------------------
    # Combat statistics
    # -------------------------------------------------------------------------

    def attack_to_hit(self, item: Item, actor: Actor | None) -> AttackToHit | None:
        """Attack bonus from the item, ability, proficiency, actor and ammo.

        Returns:
            The attack bonus, or None when the item has no attack.
        """
        if not item.has_attack:
            return None
        system = item.system
        roll_data = self.roll_data(item, actor)
        parts: list[str] = []

        bonus = system.attack_bonus
        label: str | None = None
        if bonus:
            parts.append(bonus)
            label = _signed(bonus)

        if actor is None or roll_data is None:
            return AttackToHit(label=label, parts=tuple(parts), roll_data=None)

        parts.append("@mod")

        if item.type not in (ItemKind.WEAPON, ItemKind.CONSUMABLE) or getattr(
            system, "proficient", False
        ):
            parts.append("@prof")
            proficiency = self.proficiency(item, actor)
            if proficiency is not None and proficiency.has_proficiency:
                roll_data["prof"] = proficiency.term

        actor_bonus = actor.bonuses.get(str(item.action_type))
        if actor_bonus is not None and actor_bonus.attack:
            parts.append(actor_bonus.attack)

        ammo_bonus = self._ammo_attack_bonus(item, actor)
        if ammo_bonus:
            parts.append("@ammo")
            roll_data["ammo"] = ammo_bonus

        replaced = replace_formula_data("+".join(parts), roll_data)
        formula = simplify_formula(replaced.formula) or "0"
        return AttackToHit(label=_signed(formula), parts=tuple(parts), roll_data=roll_data)

    def _ammo_attack_bonus(self, item: Item, actor: Actor) -> str | None:
        consume = item.system.consume
        if consume.type != ConsumeType.AMMO:
            return None
        ammo = actor.get_item(consume.target)
        if ammo is None:
            return None
        quantity = ammo.quantity
        can_be_consumed = bool(quantity) and quantity - (consume.amount or 0) >= 0
        bonus = getattr(ammo.system, "attack_bonus", "")
        is_ammunition = (
            ammo.type == ItemKind.CONSUMABLE and ammo.system.consumable_type == "ammo"
        )
        if can_be_consumed and bonus and is_ammunition:
            return bonus
        return None

    def critical_threshold(self, item: Item, actor: Actor | None) -> int | None:
        """Lowest of the item, ammunition and actor critical thresholds."""
        if not item.has_attack:
            return None
        system = item.system
        item_threshold = system.critical.threshold or math.inf
        ammo_threshold: float = math.inf
        actor_threshold = None
        if actor is not None:
            actor_threshold = actor.critical_threshold_flag(item.type)
            if system.consume.type == ConsumeType.AMMO:
                ammo = actor.get_item(system.consume.target)
                critical = getattr(ammo.system, "critical", None) if ammo else None
                if critical is not None and critical.threshold:
                    ammo_threshold = critical.threshold
        fallback = actor_threshold if actor_threshold is not None else self.rules.critical_threshold
        return int(min(item_threshold, ammo_threshold, fallback))

    def save_dc(self, item: Item, actor: Actor | None) -> int | None:
        """Save DC: the actor's spell DC, an ability DC, or the flat value."""
        if not item.has_save:
            return None
        save = item.system.save
        if save.scaling == "spell":
            return actor.spell_dc if actor is not None else None
        if save.scaling != "flat":
            return actor.ability_dc(save.scaling) if actor is not None else None
        return save.dc

    # -------------------------------------------------------------------------
    # Formula backed values
    # -------------------------------------------------------------------------

    def _evaluate_property(
        self,
        item: Item,
        actor: Actor,
        formula: str,
        *,
        property_name: str,
    ) -> int | float:
        """Evaluate a formula property, recording problems on the actor."""
        replaced = replace_formula_data(formula, self.roll_data(item, actor) or {})
        if replaced.missing_references:
            references = ", ".join(f"@{ref}" for ref in replaced.missing_references)
            actor.add_preparation_warning(
                f"The {property_name} formula of {item.name} references missing "
                f"data: {references}",
                warning_type=WarningType.WARNING,
                link=item.id,
            )
        try:
            return evaluate_arithmetic(replaced.formula)
        except FormulaError as exc:
            actor.add_preparation_warning(
                f"The {property_name} formula of {item.name} is malformed",
                warning_type=WarningType.ERROR,
                link=item.id,
            )
            logger.error(
                "Malformed item formula",
                item=item.name,
                property=property_name,
                formula=formula,
                error=exc.message,
            )
            return 0

    def max_uses(self, item: Item, actor: Actor | None) -> int | None:
        uses = getattr(item.system, "uses", None)
        if uses is None or uses.max is None or uses.max == "":
            return None
        if is_numeric(uses.max):
            return int(float(uses.max))
        if actor is None:
            return None
        value = self._evaluate_property(item, actor, str(uses.max), property_name="max uses")
        return int(value)

    def duration_value(self, item: Item, actor: Actor | None) -> int | float | None:
        duration = getattr(item.system, "duration", None)
        if duration is None or duration.units in ("inst", "perm"):
            return None
        value = duration.value
        if value is None or value == "":
            return None
        if is_numeric(value):
            number = float(value)
        elif actor is None:
            return None
        else:
            number = float(
                self._evaluate_property(item, actor, str(value), property_name="duration")
            )
        return int(number) if number.is_integer() else number

    def derived_damage(self, item: Item, actor: Actor | None) -> tuple[DerivedDamage, ...]:
        """Simplified damage formulas for display, one per damage part."""
        if not item.has_damage or actor is None:
            return ()
        roll_data = self.roll_data(item, actor) or {}
        damage_labels = {**self.rules.damage_types, **self.rules.healing_types}
        derived = []
        for formula, damage_type in item.system.damage.parts:
            simplified: str | None
            try:
                simplified = simplify_formula(replace_formula_data(formula, roll_data).formula)
            except FormulaError as exc:
                logger.warning(
                    "Unable to simplify damage formula",
                    item=item.name,
                    formula=formula,
                    error=exc.message,
                )
                simplified = None
            label = f"{simplified} {damage_labels.get(damage_type, '')}".strip()
            derived.append(
                DerivedDamage(formula=simplified, damage_type=damage_type, label=label)
            )
        return tuple(derived)

    # -------------------------------------------------------------------------
    # Class links and scale values
    # -------------------------------------------------------------------------

    def class_link(self, item: Item, actor: Actor | None) -> Item | None:
        """Class of a subclass, or subclass of a class, among the actor's items."""
        if actor is None:
            return None
        if item.type == ItemKind.SUBCLASS:
            class_identifier = item.system.class_identifier
            return next(
                (
                    other
                    for other in actor.items_of_kind(ItemKind.CLASS)
                    if other.identifier == class_identifier
                ),
                None,
            )
        if item.type == ItemKind.CLASS:
            identifier = item.identifier
            return next(
                (
                    other
                    for other in actor.items_of_kind(ItemKind.SUBCLASS)
                    if other.system.class_identifier == identifier
                ),
                None,
            )
        return None

    def scale_values(
        self,
        item: Item,
        index: AdvancementIndex,
        class_link: Item | None,
    ) -> dict[str, dict[str, Any] | None]:
        if item.type not in (ItemKind.CLASS, ItemKind.SUBCLASS):
            return {}
        if item.type == ItemKind.CLASS:
            level = item.system.levels
        else:
            level = class_link.system.levels if class_link is not None else 0
        return {
            advancement.identifier: advancement.value_for_level(level)
            for advancement in index.by_kind.get(AdvancementKind.SCALE_VALUE, [])
            if isinstance(advancement, ScaleValueAdvancement)
        }

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------

    def labels(
        self,
        item: Item,
        *,
        to_hit: str | None,
        save_dc: int | None,
        duration_value: int | float | None,
    ) -> ItemLabels:
        """Build the display labels of an item."""
        rules = self.rules
        system = item.system
        values: dict[str, Any] = {}

        activation = getattr(system, "activation", None)
        if activation is not None and activation.type not in ("", "none"):
            values["activation"] = _join(
                activation.cost, rules.activation_types.get(activation.type)
            )

        target = getattr(system, "target", None)
        if target is not None and target.type not in ("", "none"):
            value = target.value
            units = target.units
            if target.type == "self":
                value = units = None
            elif units == "touch":
                value = None
            values["target"] = _join(
                value, rules.distance_units.get(units or ""), rules.target_types.get(target.type)
            )

        range_ = getattr(system, "range", None)
        if range_ is not None and range_.units not in ("", "none"):
            value, long = range_.value, range_.long
            if range_.units in ("touch", "self"):
                value = long = None
            values["range"] = _join(
                value, f"/ {_join(long)}" if long else None, rules.distance_units.get(range_.units)
            )

        recharge = getattr(system, "recharge", None)
        if recharge is not None and recharge.value:
            suffix = f"{recharge.value}{'+' if recharge.value < 6 else ''}"
            values["recharge"] = f"Recharge [{suffix}]"

        duration = getattr(system, "duration", None)
        if duration is not None and duration.units:
            values["duration"] = _join(duration_value, rules.time_periods.get(duration.units))

        damage = getattr(system, "damage", None)
        if damage is not None and damage.parts:
            values["damage"] = " + ".join(part[0] for part in damage.parts).replace("+ -", "- ")
            values["damage_types"] = ", ".join(
                rules.damage_types.get(part[1]) or rules.healing_types.get(part[1], "")
                for part in damage.parts
            )

        if item.has_save:
            values["save"] = _join(
                "DC", save_dc or None, rules.abilities.get(system.save.ability or "", "")
            )
        if to_hit:
            values["to_hit"] = to_hit
        if getattr(system, "ability", None) and item.action_type is not None:
            values["ability_check"] = f"{rules.abilities.get(system.ability, '')} Ability Check"

        match item.type:
            case ItemKind.SPELL:
                values["level"] = rules.spell_levels.get(system.level, "")
                values["school"] = rules.spell_schools.get(system.school, "")
                components = system.components
                values["components"] = ", ".join(
                    abbr
                    for key, abbr in rules.spell_components.items()
                    if getattr(components, key, False)
                )
                values["component_tags"] = tuple(
                    label
                    for key, label in rules.spell_tags.items()
                    if getattr(components, key, False)
                )
                values["materials"] = system.materials.value
            case ItemKind.EQUIPMENT:
                if system.armor_value:
                    values["armor"] = f"{system.armor_value} AC"
            case ItemKind.FEAT:
                activation_type = system.activation.type
                if activation_type == "legendary":
                    values["feat_type"] = "Legendary Action"
                elif activation_type == "lair":
                    values["feat_type"] = "Lair Action"
                elif activation_type:
                    values["feat_type"] = "Attack" if system.damage.parts else "Action"
                else:
                    values["feat_type"] = "Passive"

        return ItemLabels(**values)

    # -------------------------------------------------------------------------
    # Preparation
    # -------------------------------------------------------------------------

    def prepare(self, item: Item, actor: Actor | None = None) -> PreparedItem:
        """Prepare all derived data of one item.

        Args:
            item: The item to prepare.
            actor: Owning actor; None prepares the unowned subset. Warnings
                the actor holds for this item are replaced by this pass.

        Returns:
            The read-only prepared snapshot.
        """
        if actor is not None:
            actor.clear_preparation_warnings(link=item.id)
        index = AdvancementIndex.build(item.type, item.advancement, self.rules.max_level)
        class_link = self.class_link(item, actor)
        to_hit = self.attack_to_hit(item, actor)
        save_dc = self.save_dc(item, actor)
        duration_value = self.duration_value(item, actor)

        prepared = PreparedItem(
            item=item,
            owned=actor is not None,
            ability_mod=self.ability_mod(item, actor),
            proficiency=self.proficiency(item, actor),
            roll_data=self.roll_data(item, actor),
            to_hit=to_hit.label if to_hit else None,
            attack_parts=to_hit.parts if to_hit else (),
            attack_roll_data=to_hit.roll_data if to_hit else None,
            save_dc=save_dc,
            critical_threshold=self.critical_threshold(item, actor),
            max_uses=self.max_uses(item, actor),
            duration_value=duration_value,
            derived_damage=self.derived_damage(item, actor),
            labels=self.labels(
                item,
                to_hit=to_hit.label if to_hit else None,
                save_dc=save_dc,
                duration_value=duration_value,
            ),
            advancement=index,
            class_link=class_link,
            scale_values=self.scale_values(item, index, class_link),
            has_area_target=item.has_area_target(self.rules.area_target_types),
        )
        logger.debug("Item prepared", item=item.name, owned=prepared.owned)
        return prepared

    def prepare_actor(self, actor: Actor) -> dict[str, PreparedItem]:
        """Prepare every item an actor owns.

        Clears the actor's preparation warnings first, so the warnings left
        afterwards belong to this pass only.

        Returns:
            Prepared items by item id.
        """
        actor.clear_preparation_warnings()
        return {item.id: self.prepare(item, actor) for item in actor.items}


def prepare_item(
    item: Item,
    actor: Actor | None = None,
    rules: RulesConfig | None = None,
) -> PreparedItem:
    """Prepare one item with a default calculator.

    Args:
        item: The item to prepare.
        actor: Owning actor, if any.
        rules: Rules tables; defaults to ``RulesConfig()``.

    Returns:
        The prepared item.
    """
    return DerivedStatCalculator(rules or RulesConfig()).prepare(item, actor)


__all__ = [
    "Proficiency",
    "AttackToHit",
    "DerivedDamage",
    "ItemLabels",
    "PreparedItem",
    "DerivedStatCalculator",
    "prepare_item",
]
