"""dnd-items - D&D 5E item usage and resource consumption engine.

Prepares items against their owners (attack bonus, save DC, critical
threshold, uses, labels, advancement), resolves what one use of an item
consumes, scales cantrip and upcast damage, and rolls attacks, damage and
recharges. Persistence, dialogs and notifications are injected.

Example:
    >>> from dnd_items import Actor, Item, ItemKind, ItemUseWorkflow
    >>> from dnd_items import InMemoryPersistence, RulesConfig
    >>> potion = Item(name="Potion of Healing", type=ItemKind.CONSUMABLE,
    ...               system={"quantity": 2, "uses": {"value": 1, "max": 1,
    ...                       "per": "charges", "auto_destroy": True}})
    >>> hero = Actor(name="Thorin", items=[potion])
    >>> workflow = ItemUseWorkflow(RulesConfig(), InMemoryPersistence([hero]))
    >>> workflow.use(potion, hero).updates["item_updates"]
    {'system.uses.value': 1, 'system.quantity': 1}

Modules:
    core: Configuration, logging, exceptions and rules constants.
    models: Pydantic V2 schemas for items, actors and advancements.
    engine: Preparation, usage resolution, scaling, rolls and workflows.
"""

from __future__ import annotations

# Core
from dnd_items.core.config import RulesConfig, Settings, get_settings
from dnd_items.core.exceptions import DndItemsError
from dnd_items.core.logging import configure_logging, get_logger

# Models
from dnd_items.models import Actor, Item, ItemKind, UsageOutcome

# Engine
from dnd_items.engine import (
    D20RollEngine,
    DerivedStatCalculator,
    HookEvent,
    HookRegistry,
    InMemoryPersistence,
    ItemRolls,
    ItemUseWorkflow,
    PreparedItem,
    UsageConfiguration,
    UsageResolver,
    prepare_item,
)


__version__ = "0.1.0"
__all__ = [
    "__version__",
    # Core
    "RulesConfig",
    "Settings",
    "get_settings",
    "DndItemsError",
    "configure_logging",
    "get_logger",
    # Models
    "Actor",
    "Item",
    "ItemKind",
    "UsageOutcome",
    # Engine
    "D20RollEngine",
    "DerivedStatCalculator",
    "HookEvent",
    "HookRegistry",
    "InMemoryPersistence",
    "ItemRolls",
    "ItemUseWorkflow",
    "PreparedItem",
    "UsageConfiguration",
    "UsageResolver",
    "prepare_item",
]
