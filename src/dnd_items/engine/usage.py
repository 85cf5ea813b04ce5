"""Usage resolution and resource consumption.

The ``UsageResolver`` computes everything one use of an item consumes:
its recharge, a linked resource (attribute, ammunition, material, hit dice
or another item's charges), a spell slot, and its limited uses or quantity.
Either every required resource is available and a ``ResourceConsumption``
describing all updates is returned, or the first shortage is returned as a
``UsageFailure``. The resolver never mutates the actor or any item; the
returned update buckets are applied together by a persistence sink.

Update keys are dotted paths relative to the updated document:

* item updates: ``system.uses.value``, ``system.quantity``,
  ``system.recharge.charged``
* actor updates: ``spells.spell3.value``, ``resources.primary.value``
* resource updates: ``{"_id": "<item id>", "system.quantity": 19}``
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from dnd_items.core.config import RulesConfig
from dnd_items.core.constants import HIT_DICE_SORT_KEYWORDS
from dnd_items.core.logging import get_logger
from dnd_items.core.utils import get_property, is_numeric
from dnd_items.engine.derived_stats import PreparedItem
from dnd_items.models.actor import Actor
from dnd_items.models.enums import ConsumeType, FailureReason, ItemKind
from dnd_items.models.item import ClassData, Item


logger = get_logger(__name__)


SpellLevel = int | Literal["pact"]


class UsageConfiguration(BaseModel):
    """What one use of an item should consume.

    Attributes:
        create_measured_template: Place an area template for the effect.
        consume_quantity: Consume one of the item's quantity when uses run out.
        consume_recharge: Spend the item's recharge.
        consume_resource: Consume the item's linked resource.
        consume_spell_level: Slot level to spend, or ``"pact"``.
        consume_spell_slot: Spend a spell slot.
        consume_usage: Spend one limited use.
        needs_configuration: Whether the user should be asked to confirm.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    create_measured_template: bool = False
    consume_quantity: bool = False
    consume_recharge: bool = False
    consume_resource: bool = False
    consume_spell_level: SpellLevel | None = None
    consume_spell_slot: bool = False
    consume_usage: bool = False
    needs_configuration: bool = False

    def merged(self, overrides: dict[str, Any] | None) -> "UsageConfiguration":
        """Return a copy with caller overrides applied and validated."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})


def default_usage_configuration(
    prepared: PreparedItem,
    rules: RulesConfig,
) -> UsageConfiguration:
    """Build the default configuration for using an item.

    Args:
        prepared: The prepared item.
        rules: Rules tables (spell upcast modes).

    Returns:
        Defaults derived from the item's data.
    """
    item = prepared.item
    system = item.system
    uses = getattr(system, "uses", None)
    recharge = getattr(system, "recharge", None)
    consume = getattr(system, "consume", None)

    consume_resource = bool(
        consume is not None
        and consume.target
        and (not item.has_attack or consume.type != ConsumeType.AMMO)
    )

    consume_spell_slot = False
    consume_spell_level: SpellLevel | None = None
    if item.type == ItemKind.SPELL and system.level > 0:
        mode = str(system.preparation.mode)
        consume_spell_slot = mode in rules.spell_upcast_modes
        if consume_spell_slot:
            consume_spell_level = "pact" if mode == "pact" else system.level

    configuration = UsageConfiguration(
        create_measured_template=prepared.has_area_target,
        consume_quantity=bool(uses and uses.auto_destroy),
        consume_recharge=bool(recharge and recharge.value),
        consume_resource=consume_resource,
        consume_spell_level=consume_spell_level,
        consume_spell_slot=consume_spell_slot,
        consume_usage=bool(uses and uses.per and (prepared.max_uses or 0) > 0),
    )
    configuration.needs_configuration = any(
        (
            configuration.create_measured_template,
            configuration.consume_recharge,
            configuration.consume_resource,
            configuration.consume_spell_slot,
            configuration.consume_usage,
        )
    )
    return configuration


class ConsumedResource(BaseModel):
    """One resource consumed by a usage.

    Attributes:
        kind: ``recharge``, ``spell_slot``, ``uses``, ``quantity`` or a
            consume type such as ``ammo``.
        target: Path, slot key or item id of the resource.
        amount: Amount consumed; negative for regained hit dice.
        remaining: Amount left afterwards.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    target: str
    amount: int
    remaining: int


class ResourceConsumption(BaseModel):
    """Every update one successful usage produces.

    The three buckets are applied together as a single usage event.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    consumed: tuple[ConsumedResource, ...] = ()
    actor_updates: dict[str, Any] = Field(default_factory=dict)
    item_updates: dict[str, Any] = Field(default_factory=dict)
    resource_updates: tuple[dict[str, Any], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.actor_updates or self.item_updates or self.resource_updates)


class UsageFailure(BaseModel):
    """Why a usage could not be resolved. Nothing was consumed.

    Attributes:
        reason: Failure code.
        resource_kind: The resource that was missing or short.
        message: User-facing message.
        item_id: The item being used.
    """

    model_config = ConfigDict(frozen=True)

    reason: FailureReason
    resource_kind: str
    message: str
    item_id: str


class _Buckets:
    def __init__(self) -> None:
        self.actor_updates: dict[str, Any] = {}
        self.item_updates: dict[str, Any] = {}
        self.resource_updates: list[dict[str, Any]] = []
        self.consumed: list[ConsumedResource] = []

    def record(self, kind: str, target: str, amount: int, remaining: int) -> None:
        self.consumed.append(
            ConsumedResource(kind=kind, target=target, amount=amount, remaining=remaining)
        )


class UsageResolver:
    """Resolves the resource consumption of a single item use.

    Example:
        >>> resolver = UsageResolver(RulesConfig())
        >>> result = resolver.resolve(prepared, actor, configuration)
        >>> isinstance(result, UsageFailure) or result.item_updates
    """

    def __init__(self, rules: RulesConfig) -> None:
        self.rules = rules

    def resolve(
        self,
        prepared: PreparedItem,
        actor: Actor,
        configuration: UsageConfiguration,
    ) -> ResourceConsumption | UsageFailure:
        """Compute all updates for one use, or the first shortage.

        Steps run in order: recharge, linked resource, spell slot, limited
        uses and quantity. Any failing step aborts the whole resolution.

        Args:
            prepared: The prepared item being used.
            actor: The item's owner.
            configuration: What to consume.

        Returns:
            The consumption descriptor, or a failure.
        """
        item = prepared.item
        if actor.get_item(item.id) is None:
            return self._fail(
                item,
                FailureReason.NOT_OWNED,
                "owner",
                f"{item.name} is not owned by {actor.name}.",
            )

        buckets = _Buckets()
        steps = []
        if configuration.consume_recharge:
            steps.append(lambda: self._consume_recharge(item, buckets))
        if configuration.consume_resource:
            steps.append(lambda: self._consume_resource(item, actor, buckets))
        if configuration.consume_spell_slot and configuration.consume_spell_level:
            steps.append(
                lambda: self._consume_spell_slot(
                    item, actor, configuration.consume_spell_level, buckets
                )
            )
        if configuration.consume_usage:
            steps.append(
                lambda: self._consume_usage(
                    prepared, configuration.consume_quantity, buckets
                )
            )

        for step in steps:
            failure = step()
            if failure is not None:
                logger.info(
                    "Item usage failed",
                    item=item.name,
                    reason=str(failure.reason),
                    resource=failure.resource_kind,
                )
                return failure

        consumption = ResourceConsumption(
            item_id=item.id,
            consumed=tuple(buckets.consumed),
            actor_updates=buckets.actor_updates,
            item_updates=buckets.item_updates,
            resource_updates=tuple(buckets.resource_updates),
        )
        logger.debug(
            "Item usage resolved",
            item=item.name,
            consumed=[resource.kind for resource in consumption.consumed],
        )
        return consumption

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _fail(
        self,
        item: Item,
        reason: FailureReason,
        resource_kind: str,
        message: str,
    ) -> UsageFailure:
        return UsageFailure(
            reason=reason,
            resource_kind=resource_kind,
            message=message,
            item_id=item.id,
        )

    def _consume_recharge(self, item: Item, buckets: _Buckets) -> UsageFailure | None:
        recharge = getattr(item.system, "recharge", None)
        if recharge is None or recharge.charged is False:
            return self._fail(
                item, FailureReason.NO_USES, "recharge", f"{item.name} has no uses remaining."
            )
        buckets.item_updates["system.recharge.charged"] = False
        buckets.record("recharge", item.id, 1, 0)
        return None

    def _consume_spell_slot(
        self,
        item: Item,
        actor: Actor,
        spell_level: SpellLevel,
        buckets: _Buckets,
    ) -> UsageFailure | None:
        key = "pact" if spell_level == "pact" else f"spell{spell_level}"
        slot = actor.spells.get(key)
        available = slot.value if slot is not None else 0
        if available == 0:
            if key == "pact":
                label = "Pact Magic"
            else:
                level = getattr(item.system, "level", spell_level)
                label = self.rules.spell_levels.get(level, f"Level {spell_level}")
            return self._fail(
                item,
                FailureReason.NO_SPELL_SLOTS,
                "spell_slot",
                f"You have no available {label} spell slots with which to cast {item.name}.",
            )
        remaining = max(available - 1, 0)
        buckets.actor_updates[f"spells.{key}.value"] = remaining
        buckets.record("spell_slot", key, 1, remaining)
        return None

    def _consume_usage(
        self,
        prepared: PreparedItem,
        consume_quantity: bool,
        buckets: _Buckets,
    ) -> UsageFailure | None:
        item = prepared.item
        uses = getattr(item.system, "uses", None)
        if uses is None:
            return self._fail(
                item, FailureReason.NO_USES, "uses", f"{item.name} has no uses remaining."
            )
        available = uses.value or 0
        remaining = max(available - 1, 0)
        used = False
        if available >= 1:
            used = True
            buckets.item_updates["system.uses.value"] = remaining
            buckets.record("uses", item.id, 1, remaining)

        if consume_quantity and (not used or remaining == 0):
            quantity = item.quantity if item.quantity is not None else 1
            if quantity >= 1:
                used = True
                buckets.item_updates["system.quantity"] = max(quantity - 1, 0)
                buckets.item_updates["system.uses.value"] = (
                    prepared.max_uses if prepared.max_uses is not None else 1
                )
                buckets.record("quantity", item.id, 1, max(quantity - 1, 0))

        if not used:
            return self._fail(
                item, FailureReason.NO_USES, "uses", f"{item.name} has no uses remaining."
            )
        return None

    def _consume_resource(
        self,
        item: Item,
        actor: Actor,
        buckets: _Buckets,
    ) -> UsageFailure | None:
        """Consume the item's linked resource."""
        consume = getattr(item.system, "consume", None)
        if consume is None or consume.type is None:
            return None

        kind = consume.type
        type_label = self.rules.consumption_types.get(str(kind), str(kind))
        if not consume.target:
            return self._fail(
                item,
                FailureReason.NO_RESOURCE_TARGET,
                str(kind),
                f"{item.name} is configured to consume {type_label} but no resource "
                "is selected.",
            )

        amount = consume.amount if consume.amount is not None else 1
        resource: Any = None
        quantity = 0

        match kind:
            case ConsumeType.ATTRIBUTE:
                value = get_property(actor, consume.target)
                if is_numeric(value):
                    resource = value
                    quantity = int(float(value))
            case ConsumeType.AMMO | ConsumeType.MATERIAL:
                resource = actor.get_item(consume.target)
                quantity = (resource.quantity or 0) if resource is not None else 0
            case ConsumeType.HIT_DICE:
                resource = self._hit_dice_classes(actor, consume.target)
                quantity = sum(
                    cls.system.levels - cls.system.hit_dice_used for cls in resource
                )
            case ConsumeType.CHARGES:
                resource = actor.get_item(consume.target)
                if resource is not None:
                    uses = getattr(resource.system, "uses", None)
                    recharge = getattr(resource.system, "recharge", None)
                    if uses is not None and uses.per and uses.max:
                        quantity = uses.value or 0
                    elif recharge is not None and recharge.value:
                        quantity = 1 if recharge.charged else 0
                        amount = 1

        if resource is None:
            return self._fail(
                item,
                FailureReason.RESOURCE_NOT_FOUND,
                str(kind),
                f"The {type_label} resource consumed by {item.name} could not be found.",
            )

        remaining = quantity - amount
        if remaining < 0:
            return self._fail(
                item,
                FailureReason.INSUFFICIENT_RESOURCE,
                str(kind),
                f"There is not enough {type_label} remaining to use {item.name}.",
            )

        match kind:
            case ConsumeType.ATTRIBUTE:
                buckets.actor_updates[consume.target] = remaining
            case ConsumeType.AMMO | ConsumeType.MATERIAL:
                buckets.resource_updates.append(
                    {"_id": consume.target, "system.quantity": remaining}
                )
            case ConsumeType.HIT_DICE:
                self._spend_hit_dice(resource, consume.target, amount, buckets)
            case ConsumeType.CHARGES:
                uses = getattr(resource.system, "uses", None)
                recharge = getattr(resource.system, "recharge", None)
                update: dict[str, Any] = {"_id": consume.target}
                if uses is not None and uses.per and uses.max:
                    update["system.uses.value"] = remaining
                elif recharge is not None and recharge.value:
                    update["system.recharge.charged"] = False
                buckets.resource_updates.append(update)

        if kind != ConsumeType.HIT_DICE:
            buckets.record(str(kind), consume.target, amount, remaining)
        return None

    # -------------------------------------------------------------------------
    # Hit dice
    # -------------------------------------------------------------------------

    def _hit_dice_classes(self, actor: Actor, target: str) -> list[Item]:
        """Class items whose hit dice can be spent.

        ``smallest`` and ``largest`` select every class; any other target is
        a die denomination filter such as ``d8``.
        """
        classes = actor.class_items
        if target in HIT_DICE_SORT_KEYWORDS:
            return list(classes)
        return [cls for cls in classes if cls.system.hit_dice == target]

    def _spend_hit_dice(
        self,
        classes: list[Item],
        target: str,
        amount: int,
        buckets: _Buckets,
    ) -> None:
        """Spend (or regain, for negative amounts) hit dice across classes."""
        if target in HIT_DICE_SORT_KEYWORDS:
            classes = sorted(
                classes,
                key=lambda cls: cls.system.hit_die_faces,
                reverse=target == "largest",
            )

        to_consume = amount
        for cls in classes:
            system: ClassData = cls.system  # type: ignore[assignment]
            available = (system.levels if to_consume > 0 else 0) - system.hit_dice_used
            if to_consume > 0:
                delta = min(to_consume, available)
            else:
                delta = max(to_consume, available)
            if delta == 0:
                continue
            used = system.hit_dice_used + delta
            buckets.resource_updates.append({"_id": cls.id, "system.hit_dice_used": used})
            buckets.record(str(ConsumeType.HIT_DICE), cls.id, delta, system.levels - used)
            to_consume -= delta
            if to_consume == 0:
                break


__all__ = [
    "SpellLevel",
    "UsageConfiguration",
    "default_usage_configuration",
    "ConsumedResource",
    "ResourceConsumption",
    "UsageFailure",
    "UsageResolver",
]
