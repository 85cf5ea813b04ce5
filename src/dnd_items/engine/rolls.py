"""Attack, damage, formula and recharge rolls for items.

Each roll builds a ``RollRequest`` (formula parts, roll data and options),
offers it to the matching ``pre_roll_*`` hook, where callbacks may adjust it
or veto the roll, and rolls it through the injected ``RollEngine``.

Attacks with ammunition resolve the ammunition first; the attack is not
rolled when none is left, and the ammunition spent is committed after the
roll. The ammunition used by the last attack of an item adds its damage to
the next damage roll of that item.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any

from dnd_items.core.config import RulesConfig
from dnd_items.core.constants import ELVEN_ACCURACY_ABILITIES, RECHARGE_DIE
from dnd_items.core.exceptions import ItemUsageError
from dnd_items.core.logging import get_logger
from dnd_items.engine.damage_scaling import (
    cantrip_level,
    scale_cantrip_damage,
    scale_spell_damage,
)
from dnd_items.engine.derived_stats import DerivedStatCalculator
from dnd_items.engine.dice import D20RollEngine, RollOptions, RollOutcome
from dnd_items.engine.hooks import HookEvent, HookRegistry
from dnd_items.engine.interfaces import (
    NotificationSink,
    PersistenceSink,
    RollEngine,
    UsageCommit,
)
from dnd_items.engine.persistence import LoggingNotifier
from dnd_items.engine.usage import UsageConfiguration, UsageFailure, UsageResolver
from dnd_items.models.actor import Actor
from dnd_items.models.enums import (
    ActionType,
    ConsumeType,
    DamageScalingMode,
    ItemKind,
    NotificationKind,
    RollMode,
)
from dnd_items.models.item import Item


logger = get_logger(__name__)


@dataclass
class RollRequest:
    """A pending roll, open to adjustment by ``pre_roll_*`` hooks.

    Attributes:
        parts: Formula parts, joined with ``+``.
        data: Roll data the parts resolve against.
        options: Advantage and critical options.
    """

    parts: list[str]
    data: dict[str, Any] = field(default_factory=dict)
    options: RollOptions = field(default_factory=RollOptions)

    @property
    def formula(self) -> str:
        return " + ".join(part for part in self.parts if part)


class ItemRolls:
    """Rolls an item's attack, damage, other formula and recharge.

    Args:
        rules: Rules tables.
        persistence: Sink for ammunition and recharge updates.
        roll_engine: Dice roller; a ``D20RollEngine`` when omitted.
        hooks: Hook registry; a fresh one when omitted.
        notifier: Sink for user-facing messages; logs when omitted.
    """

    def __init__(
        self,
        rules: RulesConfig,
        persistence: PersistenceSink,
        *,
        roll_engine: RollEngine | None = None,
        hooks: HookRegistry | None = None,
        notifier: NotificationSink | None = None,
    ) -> None:
        self.rules = rules
        self.persistence = persistence
        self.roll_engine = roll_engine or D20RollEngine()
        self.hooks = hooks or HookRegistry()
        self.notifier = notifier or LoggingNotifier()
        self.calculator = DerivedStatCalculator(rules)
        self.resolver = UsageResolver(rules)
        self._ammo: dict[str, Item] = {}

    # -------------------------------------------------------------------------
    # Attack
    # -------------------------------------------------------------------------

    def roll_attack(
        self,
        item: Item,
        actor: Actor,
        mode: RollMode = RollMode.NORMAL,
    ) -> RollOutcome | None:
        """Roll an attack with an item.

        Args:
            item: Item making the attack; must be owned by ``actor``.
            actor: The attacker.
            mode: Advantage state.

        Returns:
            The roll, or None when ammunition ran out or a hook vetoed.

        Raises:
            ItemUsageError: If the item has no attack.
        """
        if not item.has_attack:
            raise ItemUsageError(f"{item.name} cannot make an attack roll", item_id=item.id)

        prepared = self.calculator.prepare(item, actor)
        consume = item.system.consume
        ammo_usage = None
        ammo = None
        if consume.type == ConsumeType.AMMO and consume.target:
            ammo_usage = self.resolver.resolve(
                prepared, actor, UsageConfiguration(consume_resource=True)
            )
            if isinstance(ammo_usage, UsageFailure):
                self.notifier.notify(NotificationKind.WARNING, ammo_usage.message, link=item.id)
                return None
            ammo = actor.get_item(consume.target)

        request = RollRequest(
            parts=["1d20", *prepared.attack_parts],
            data=copy.deepcopy(prepared.attack_roll_data or {}),
            options=RollOptions(
                mode=mode,
                critical_threshold=prepared.critical_threshold,
                elven_accuracy=(
                    actor.flags.elven_accuracy
                    and prepared.ability_mod in ELVEN_ACCURACY_ABILITIES
                ),
                halfling_lucky=actor.flags.halfling_lucky,
            ),
        )
        if not self.hooks.call(HookEvent.PRE_ROLL_ATTACK, item, request):
            return None

        outcome = self.roll_engine.roll(request.formula, request.data, request.options)

        if ammo_usage is not None and not ammo_usage.is_empty:
            committed = self._commit(
                item,
                UsageCommit(
                    actor_id=actor.id,
                    item_id=item.id,
                    actor_updates=ammo_usage.actor_updates,
                    item_updates=ammo_usage.item_updates,
                    resource_updates=ammo_usage.resource_updates,
                ),
                "the ammunition spent by",
            )
            if not committed:
                ammo = None
                self._ammo.pop(item.id, None)
        if ammo is not None:
            self._ammo[item.id] = ammo

        self.hooks.call_all(HookEvent.ROLL_ATTACK, item, outcome, ammo)
        logger.info(
            "Attack rolled",
            item=item.name,
            total=outcome.total,
            critical=outcome.is_critical,
        )
        return outcome

    # -------------------------------------------------------------------------
    # Damage
    # -------------------------------------------------------------------------

    def damage_parts(
        self,
        item: Item,
        actor: Actor,
        *,
        spell_level: int | None = None,
        versatile: bool = False,
    ) -> list[str]:
        """Damage formula parts after versatile and spell scaling."""
        damage = item.system.damage
        parts = [formula for formula, _ in damage.parts]
        if versatile and damage.versatile:
            parts[0] = damage.versatile

        if item.type == ItemKind.SPELL:
            scaling = item.system.scaling
            if scaling.mode == DamageScalingMode.CANTRIP:
                level = cantrip_level(actor, item.system.preparation.mode)
                parts = scale_cantrip_damage(parts, scaling.formula, level)
            elif spell_level and scaling.mode == DamageScalingMode.LEVEL and scaling.formula:
                parts = scale_spell_damage(parts, item.system.level, spell_level, scaling.formula)
        return parts

    def roll_damage(
        self,
        item: Item,
        actor: Actor,
        *,
        critical: bool = False,
        spell_level: int | None = None,
        versatile: bool = False,
    ) -> RollOutcome | None:
        """Roll an item's damage.

        Args:
            item: Item dealing damage.
            actor: The item's owner.
            critical: Roll as a critical hit.
            spell_level: Slot level a spell is cast with.
            versatile: Use the versatile formula for the first part.

        Returns:
            The roll, or None when a hook vetoed.

        Raises:
            ItemUsageError: If the item has no damage.
        """
        if not item.has_damage:
            raise ItemUsageError(f"{item.name} cannot make a damage roll", item_id=item.id)

        prepared = self.calculator.prepare(item, actor)
        data = copy.deepcopy(prepared.roll_data or {})
        if spell_level:
            data["item"]["level"] = spell_level

        parts = self.damage_parts(item, actor, spell_level=spell_level, versatile=versatile)

        actor_bonus = actor.bonuses.get(str(item.action_type))
        if actor_bonus is not None and actor_bonus.damage and actor_bonus.damage.strip() not in (
            "0",
            "+0",
            "-0",
        ):
            parts.append(actor_bonus.damage)

        ammo = self._ammo.pop(item.id, None)
        if (
            ammo is not None
            and ammo.type == ItemKind.CONSUMABLE
            and ammo.system.consumable_type == "ammo"
            and ammo.system.damage.parts
        ):
            parts.append("@ammo")
            data["ammo"] = "+".join(formula for formula, _ in ammo.system.damage.parts)

        options = RollOptions(critical=critical)
        if item.action_type == ActionType.MELEE_WEAPON_ATTACK:
            options = replace(options, critical_bonus_dice=actor.flags.melee_critical_damage_dice)
        critical_damage = getattr(item.system, "critical", None)
        if critical_damage is not None and critical_damage.damage:
            options = replace(options, critical_bonus_damage=critical_damage.damage)

        request = RollRequest(parts=parts, data=data, options=options)
        if not self.hooks.call(HookEvent.PRE_ROLL_DAMAGE, item, request):
            return None

        outcome = self.roll_engine.roll(request.formula, request.data, request.options)
        self.hooks.call_all(HookEvent.ROLL_DAMAGE, item, outcome)
        logger.info("Damage rolled", item=item.name, total=outcome.total, critical=critical)
        return outcome

    # -------------------------------------------------------------------------
    # Other formula and recharge
    # -------------------------------------------------------------------------

    def roll_formula(
        self,
        item: Item,
        actor: Actor,
        *,
        spell_level: int | None = None,
    ) -> RollOutcome | None:
        """Roll the item's "other" formula.

        Raises:
            ItemUsageError: If the item has no other formula.
        """
        formula = getattr(item.system, "formula", "")
        if not formula:
            raise ItemUsageError(f"{item.name} has no formula to roll", item_id=item.id)

        data = copy.deepcopy(self.calculator.roll_data(item, actor) or {})
        if spell_level:
            data["item"]["level"] = spell_level

        request = RollRequest(parts=[formula], data=data)
        if not self.hooks.call(HookEvent.PRE_ROLL_FORMULA, item, request):
            return None

        outcome = self.roll_engine.roll(request.formula, request.data, request.options)
        self.hooks.call_all(HookEvent.ROLL_FORMULA, item, outcome)
        return outcome

    def roll_recharge(self, item: Item, actor: Actor) -> RollOutcome | None:
        """Roll to recharge an item; success marks it charged again.

        Raises:
            ItemUsageError: If the item has no recharge value.
        """
        recharge = getattr(item.system, "recharge", None)
        if recharge is None or not recharge.value:
            raise ItemUsageError(f"{item.name} does not recharge", item_id=item.id)

        request = RollRequest(parts=[RECHARGE_DIE])
        if not self.hooks.call(HookEvent.PRE_ROLL_RECHARGE, item, request):
            return None

        outcome = self.roll_engine.roll(request.formula, request.data, request.options)
        success = outcome.total >= recharge.value
        self.hooks.call_all(HookEvent.ROLL_RECHARGE, item, outcome, success)
        if success:
            self._commit(
                item,
                UsageCommit(
                    actor_id=actor.id,
                    item_id=item.id,
                    item_updates={"system.recharge.charged": True},
                ),
                "the recharge of",
            )
        logger.info(
            "Recharge rolled",
            item=item.name,
            total=outcome.total,
            target=recharge.value,
            recharged=success,
        )
        return outcome

    def _commit(self, item: Item, commit: UsageCommit, action: str) -> bool:
        result = self.persistence.commit(commit)
        if not result.success:
            self.notifier.notify(
                NotificationKind.ERROR,
                f"Could not save {action} {item.name}: {result.error}",
                link=item.id,
            )
        return result.success


__all__ = ["RollRequest", "ItemRolls"]
