"""Pydantic V2 schemas for items and their kind-specific system data.

An ``Item`` carries a kind tag and a ``system`` block whose model depends on
that kind: weapons, spells, consumables and the rest each validate their own
fields on construction. Shared blocks (uses, recharge, consumption target,
save, damage, activation) are small component models reused through the
``ActivatedEffectData`` and ``ActionData`` mixins.

Derived values (labels, to-hit, save DC, prepared max uses) are never stored
here; see ``dnd_items.engine.derived_stats.PreparedItem``.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)

from dnd_items.core.utils import slugify
from dnd_items.models.enums import (
    ActionType,
    ConsumeType,
    DamageScalingMode,
    ItemKind,
    SpellPreparationMode,
)


_COMPONENT_CONFIG = ConfigDict(extra="forbid", validate_assignment=True)


# =============================================================================
# Shared Components
# =============================================================================


class Uses(BaseModel):
    """Limited uses of an item.

    Attributes:
        value: Remaining uses.
        max: Maximum uses, a number or a formula such as ``"@prof"``.
        per: Recovery period (``sr``, ``lr``, ``day``, ``charges``).
        recovery: Formula for uses regained on recovery.
        auto_destroy: Consume one of the item's quantity when uses run out.
    """

    model_config = _COMPONENT_CONFIG

    value: int | None = Field(default=None, ge=0)
    max: int | str | None = None
    per: str | None = None
    recovery: str = ""
    auto_destroy: bool = False


class Recharge(BaseModel):
    """Recharge rule, e.g. value 5 means 'Recharge 5-6'."""

    model_config = _COMPONENT_CONFIG

    value: int | None = Field(default=None, ge=1, le=6)
    charged: bool = True


class Consume(BaseModel):
    """Linked resource consumed on each use."""

    model_config = _COMPONENT_CONFIG

    type: ConsumeType | None = None
    target: str | None = None
    amount: int | None = None
    scale: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def empty_type_is_none(cls, value: Any) -> Any:
        return value or None


class Save(BaseModel):
    """Saving throw forced by the item.

    Attributes:
        ability: Ability the target saves with.
        dc: Stored DC, used as-is with ``flat`` scaling.
        scaling: ``spell``, ``flat`` or an ability abbreviation.
    """

    model_config = _COMPONENT_CONFIG

    ability: str | None = None
    dc: int | None = None
    scaling: str = "spell"


class Damage(BaseModel):
    """Damage parts as ``(formula, damage_type)`` pairs plus a versatile formula."""

    model_config = _COMPONENT_CONFIG

    parts: list[tuple[str, str]] = Field(default_factory=list)
    versatile: str = ""


class Critical(BaseModel):
    model_config = _COMPONENT_CONFIG

    threshold: int | None = Field(default=None, ge=1, le=20)
    damage: str = ""


class Activation(BaseModel):
    model_config = _COMPONENT_CONFIG

    type: str = ""
    cost: int | None = None
    condition: str = ""


class Duration(BaseModel):
    model_config = _COMPONENT_CONFIG

    value: int | str | None = None
    units: str = ""


class Target(BaseModel):
    model_config = _COMPONENT_CONFIG

    value: float | None = None
    width: float | None = None
    units: str = ""
    type: str = ""


class Range(BaseModel):
    model_config = _COMPONENT_CONFIG

    value: float | None = None
    long: float | None = None
    units: str = ""


# =============================================================================
# System Data
# =============================================================================


class ItemSystemData(BaseModel):
    """Base of every kind-specific system block."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    description: str = ""
    identifier: str = ""


class PhysicalItemData(ItemSystemData):
    """Items that exist in an inventory."""

    quantity: int = Field(default=1, ge=0)
    weight: float = Field(default=0.0, ge=0)
    price: float = Field(default=0.0, ge=0)
    equipped: bool = False


class ActivatedEffectData(ItemSystemData):
    """Items that can be activated and may consume something when they are."""

    activation: Activation = Field(default_factory=Activation)
    duration: Duration = Field(default_factory=Duration)
    target: Target = Field(default_factory=Target)
    range: Range = Field(default_factory=Range)
    uses: Uses = Field(default_factory=Uses)
    consume: Consume = Field(default_factory=Consume)
    recharge: Recharge = Field(default_factory=Recharge)


class ActionData(ActivatedEffectData):
    """Items that perform an action: attack, save, heal, check or utility.

    Attributes:
        ability: Explicit ability; inferred from the item when empty.
        action_type: What the action does.
        attack_bonus: Flat bonus or formula added to the attack roll.
        formula: Additional "other" formula rolled separately.
    """

    ability: str | None = None
    action_type: ActionType | None = None
    attack_bonus: str = ""
    chat_flavor: str = ""
    critical: Critical = Field(default_factory=Critical)
    damage: Damage = Field(default_factory=Damage)
    formula: str = ""
    save: Save = Field(default_factory=Save)

    @field_validator("ability", "action_type", mode="before")
    @classmethod
    def empty_is_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("attack_bonus", mode="before")
    @classmethod
    def stringify_bonus(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class WeaponData(ActionData, PhysicalItemData):
    """Weapon system data.

    Attributes:
        weapon_type: ``simpleM``, ``simpleR``, ``martialM``, ``martialR``, ...
        properties: Weapon property flags such as ``fin`` (finesse).
        proficient: Whether the owner adds proficiency to attacks.
    """

    weapon_type: str = "simpleM"
    properties: dict[str, bool] = Field(default_factory=dict)
    proficient: bool = False


class EquipmentData(ActionData, PhysicalItemData):
    """Armor, shields, trinkets and other wearables."""

    equipment_type: str = "trinket"
    armor_value: int | None = None
    dex_cap: int | None = None
    proficient: bool = False


class ConsumableData(ActionData, PhysicalItemData):
    """Potions, scrolls, wands, ammunition and other consumables."""

    consumable_type: str = "potion"


class ToolData(PhysicalItemData):
    """Tool system data. ``proficient`` is a multiplier: 0, 0.5, 1 or 2."""

    tool_type: str = ""
    ability: str | None = "int"
    proficient: float = 0
    bonus: str = ""

    @field_validator("proficient")
    @classmethod
    def validate_multiplier(cls, value: float) -> float:
        if value not in (0, 0.5, 1, 2):
            raise ValueError("Proficiency multiplier must be 0, 0.5, 1 or 2")
        return value


class SpellComponents(BaseModel):
    model_config = _COMPONENT_CONFIG

    vocal: bool = False
    somatic: bool = False
    material: bool = False
    ritual: bool = False
    concentration: bool = False


class SpellMaterials(BaseModel):
    model_config = _COMPONENT_CONFIG

    value: str = ""
    consumed: bool = False
    cost: float = 0
    supply: int = 0


class SpellPreparation(BaseModel):
    model_config = _COMPONENT_CONFIG

    mode: SpellPreparationMode = SpellPreparationMode.PREPARED
    prepared: bool = False


class SpellScaling(BaseModel):
    model_config = _COMPONENT_CONFIG

    mode: DamageScalingMode = DamageScalingMode.NONE
    formula: str = ""


class SpellData(ActionData):
    """Spell system data. Level 0 is a cantrip."""

    level: int = Field(default=1, ge=0, le=9)
    school: str = ""
    components: SpellComponents = Field(default_factory=SpellComponents)
    materials: SpellMaterials = Field(default_factory=SpellMaterials)
    preparation: SpellPreparation = Field(default_factory=SpellPreparation)
    scaling: SpellScaling = Field(default_factory=SpellScaling)


class FeatData(ActionData):
    feat_type: str = ""
    requirements: str = ""


class LootData(PhysicalItemData):
    pass


class Spellcasting(BaseModel):
    model_config = _COMPONENT_CONFIG

    progression: str = "none"
    ability: str = ""


class ClassData(ItemSystemData):
    """Class system data.

    Attributes:
        levels: Levels the actor has in this class.
        hit_dice: Hit die denomination, e.g. ``"d8"``.
        hit_dice_used: Hit dice of this class already spent.
        spellcasting: Spellcasting progression and ability.
    """

    levels: int = Field(default=1, ge=0)
    hit_dice: str = Field(default="d8", pattern=r"^d\d+$")
    hit_dice_used: int = Field(default=0, ge=0)
    spellcasting: Spellcasting = Field(default_factory=Spellcasting)

    @property
    def hit_die_faces(self) -> int:
        return int(self.hit_dice[1:])


class SubclassData(ItemSystemData):
    class_identifier: str = ""
    spellcasting: Spellcasting = Field(default_factory=Spellcasting)


class BackgroundData(ItemSystemData):
    pass


SYSTEM_MODELS: dict[ItemKind, type[ItemSystemData]] = {
    ItemKind.WEAPON: WeaponData,
    ItemKind.SPELL: SpellData,
    ItemKind.EQUIPMENT: EquipmentData,
    ItemKind.FEAT: FeatData,
    ItemKind.CONSUMABLE: ConsumableData,
    ItemKind.TOOL: ToolData,
    ItemKind.LOOT: LootData,
    ItemKind.CLASS: ClassData,
    ItemKind.SUBCLASS: SubclassData,
    ItemKind.BACKGROUND: BackgroundData,
}
"""Kind tag to system data model."""


# =============================================================================
# Item
# =============================================================================


class Item(BaseModel):
    """An item document.

    Attributes:
        id: Unique identifier.
        name: Display name.
        type: Item kind; selects the ``system`` model.
        system: Kind-specific system data.
        advancement: Ordered raw advancement records; entries that are not
            valid advancements are kept as stored and skipped when read.
        flags: Free-form module flags.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex[:16], alias="_id")
    name: str = Field(min_length=1, max_length=200)
    type: ItemKind
    system: SerializeAsAny[ItemSystemData] = Field(default_factory=ItemSystemData)
    advancement: list[Any] = Field(default_factory=list)
    flags: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def select_system_model(cls, data: Any) -> Any:
        """Validate the ``system`` block with the model for the item kind."""
        if not isinstance(data, dict):
            return data
        try:
            kind = ItemKind(data.get("type"))
        except ValueError:
            return data
        model = SYSTEM_MODELS[kind]
        system = data.get("system")
        if isinstance(system, model):
            return data
        if isinstance(system, BaseModel):
            system = system.model_dump()
        return {**data, "system": model.model_validate(system or {})}

    @model_validator(mode="after")
    def check_system_kind(self) -> "Item":
        expected = SYSTEM_MODELS[self.type]
        if not isinstance(self.system, expected):
            raise ValueError(
                f"{self.type} item requires {expected.__name__} system data, "
                f"got {type(self.system).__name__}"
            )
        return self

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @property
    def action_type(self) -> ActionType | None:
        return getattr(self.system, "action_type", None)

    @property
    def identifier(self) -> str:
        """Explicit identifier, or the slugified name."""
        return self.system.identifier or slugify(self.name)

    @property
    def has_attack(self) -> bool:
        return self.action_type is not None and self.action_type.is_attack

    @property
    def has_damage(self) -> bool:
        damage = getattr(self.system, "damage", None)
        return self.action_type is not None and bool(damage and damage.parts)

    @property
    def is_versatile(self) -> bool:
        damage = getattr(self.system, "damage", None)
        return self.action_type is not None and bool(damage and damage.versatile)

    @property
    def is_healing(self) -> bool:
        return self.action_type == ActionType.HEALING and self.has_damage

    @property
    def has_save(self) -> bool:
        save = getattr(self.system, "save", None)
        return bool(save and save.ability and save.scaling)

    @property
    def has_ability_check(self) -> bool:
        return self.action_type == ActionType.ABILITY_CHECK and bool(
            getattr(self.system, "ability", None)
        )

    @property
    def has_target(self) -> bool:
        target = getattr(self.system, "target", None)
        return bool(target and target.type)

    def has_area_target(self, area_target_types: frozenset[str]) -> bool:
        """Whether the item targets an area template (cone, sphere, ...)."""
        target = getattr(self.system, "target", None)
        return bool(target and target.type in area_target_types)

    @property
    def quantity(self) -> int | None:
        return getattr(self.system, "quantity", None)


__all__ = [
    "Uses",
    "Recharge",
    "Consume",
    "Save",
    "Damage",
    "Critical",
    "Activation",
    "Duration",
    "Target",
    "Range",
    "ItemSystemData",
    "PhysicalItemData",
    "ActivatedEffectData",
    "ActionData",
    "WeaponData",
    "EquipmentData",
    "ConsumableData",
    "ToolData",
    "SpellComponents",
    "SpellMaterials",
    "SpellPreparation",
    "SpellScaling",
    "SpellData",
    "FeatData",
    "LootData",
    "Spellcasting",
    "ClassData",
    "SubclassData",
    "BackgroundData",
    "SYSTEM_MODELS",
    "Item",
]
