"""Pydantic V2 schemas for items, actors and advancements.

Submodules:
    enums: Enumeration types (ItemKind, ActionType, ConsumeType, ...)
    item: Items and their kind-specific system data
    actor: Actors that own items, with roll data and preparation warnings
    advancement: Leveling rules attached to items

Example:
    >>> from dnd_items.models import Item, ItemKind
    >>> bow = Item(name="Longbow", type=ItemKind.WEAPON,
    ...            system={"weapon_type": "martialR", "action_type": "rwak"})
    >>> bow.has_attack
    True
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from dnd_items.models.enums import (
    Ability,
    ActionType,
    ActorKind,
    AdvancementKind,
    ConsumeType,
    DamageScalingMode,
    FailureReason,
    ItemKind,
    NotificationKind,
    RollMode,
    SpellPreparationMode,
    UsageOutcome,
    WarningType,
)

# =============================================================================
# Advancements
# =============================================================================
from dnd_items.models.advancement import (
    AbilityScoreImprovementAdvancement,
    Advancement,
    AdvancementBase,
    HitPointsAdvancement,
    ItemChoiceAdvancement,
    ItemGrantAdvancement,
    ScaleValueAdvancement,
    parse_advancement,
)

# =============================================================================
# Items
# =============================================================================
from dnd_items.models.item import (
    SYSTEM_MODELS,
    ActionData,
    Activation,
    ActivatedEffectData,
    BackgroundData,
    ClassData,
    ConsumableData,
    Consume,
    Critical,
    Damage,
    Duration,
    EquipmentData,
    FeatData,
    Item,
    ItemSystemData,
    LootData,
    PhysicalItemData,
    Range,
    Recharge,
    Save,
    SpellData,
    SubclassData,
    Target,
    ToolData,
    Uses,
    WeaponData,
)

# =============================================================================
# Actors
# =============================================================================
from dnd_items.models.actor import (
    AbilityScore,
    ActionBonus,
    Actor,
    ActorFlags,
    Attributes,
    Details,
    PreparationWarning,
    Resource,
    SpellSlot,
)


__all__ = [
    # Enums
    "Ability",
    "ActionType",
    "ActorKind",
    "AdvancementKind",
    "ConsumeType",
    "DamageScalingMode",
    "FailureReason",
    "ItemKind",
    "NotificationKind",
    "RollMode",
    "SpellPreparationMode",
    "UsageOutcome",
    "WarningType",
    # Advancements
    "AdvancementBase",
    "Advancement",
    "HitPointsAdvancement",
    "AbilityScoreImprovementAdvancement",
    "ItemGrantAdvancement",
    "ItemChoiceAdvancement",
    "ScaleValueAdvancement",
    "parse_advancement",
    # Items
    "SYSTEM_MODELS",
    "Item",
    "ItemSystemData",
    "PhysicalItemData",
    "ActivatedEffectData",
    "ActionData",
    "WeaponData",
    "EquipmentData",
    "ConsumableData",
    "ToolData",
    "SpellData",
    "FeatData",
    "LootData",
    "ClassData",
    "SubclassData",
    "BackgroundData",
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
    # Actors
    "Actor",
    "AbilityScore",
    "Attributes",
    "Details",
    "SpellSlot",
    "Resource",
    "ActionBonus",
    "ActorFlags",
    "PreparationWarning",
]
