"""Item usage engine.

Submodules:
    formula: ``@`` reference substitution, arithmetic and simplification
    dice: Dice rolling with advantage and critical hits (d20 library)
    hooks: Ordered extension point callbacks
    advancement_index: Advancement records indexed by id, level and kind
    derived_stats: Derived combat statistics and labels for items
    usage: Usage configuration and resource consumption
    damage_scaling: Cantrip and upcast damage scaling
    interfaces: Persistence, notification, prompt and roll contracts
    persistence: In-memory persistence and logging notification sinks
    item_use: The complete item use workflow
    rolls: Attack, damage, formula and recharge rolls

Example:
    >>> from dnd_items.engine import InMemoryPersistence, ItemUseWorkflow
    >>> store = InMemoryPersistence([actor])
    >>> workflow = ItemUseWorkflow(RulesConfig(), store)
    >>> result = workflow.use(potion, actor)
    >>> result.outcome
    <UsageOutcome.COMPLETED: 'completed'>
"""

from __future__ import annotations

# =============================================================================
# Formulas and Dice
# =============================================================================
from dnd_items.engine.formula import (
    FormulaEvaluator,
    FormulaResult,
    ReplacedFormula,
    evaluate_arithmetic,
    replace_formula_data,
    simplify_formula,
    split_terms,
)
from dnd_items.engine.dice import (
    D20RollEngine,
    RollOptions,
    RollOutcome,
    critical_formula,
)

# =============================================================================
# Hooks
# =============================================================================
from dnd_items.engine.hooks import HookEvent, HookRegistry

# =============================================================================
# Preparation
# =============================================================================
from dnd_items.engine.advancement_index import AdvancementIndex
from dnd_items.engine.derived_stats import (
    DerivedStatCalculator,
    ItemLabels,
    PreparedItem,
    prepare_item,
)

# =============================================================================
# Usage and Scaling
# =============================================================================
from dnd_items.engine.usage import (
    ConsumedResource,
    ResourceConsumption,
    UsageConfiguration,
    UsageFailure,
    UsageResolver,
    default_usage_configuration,
)
from dnd_items.engine.damage_scaling import (
    cantrip_level,
    multiply_formula,
    scale_cantrip_damage,
    scale_damage,
    scale_spell_damage,
)

# =============================================================================
# Collaborators
# =============================================================================
from dnd_items.engine.interfaces import (
    CommitResult,
    ConfigurationPrompt,
    NotificationSink,
    PersistenceSink,
    RollEngine,
    UsageCommit,
)
from dnd_items.engine.persistence import InMemoryPersistence, LoggingNotifier

# =============================================================================
# Workflows
# =============================================================================
from dnd_items.engine.item_use import ItemUseResult, ItemUseWorkflow, UseOptions
from dnd_items.engine.rolls import ItemRolls, RollRequest


__all__ = [
    # Formulas and dice
    "FormulaEvaluator",
    "FormulaResult",
    "ReplacedFormula",
    "evaluate_arithmetic",
    "replace_formula_data",
    "simplify_formula",
    "split_terms",
    "D20RollEngine",
    "RollOptions",
    "RollOutcome",
    "critical_formula",
    # Hooks
    "HookEvent",
    "HookRegistry",
    # Preparation
    "AdvancementIndex",
    "DerivedStatCalculator",
    "ItemLabels",
    "PreparedItem",
    "prepare_item",
    # Usage and scaling
    "ConsumedResource",
    "ResourceConsumption",
    "UsageConfiguration",
    "UsageFailure",
    "UsageResolver",
    "default_usage_configuration",
    "cantrip_level",
    "multiply_formula",
    "scale_cantrip_damage",
    "scale_damage",
    "scale_spell_damage",
    # Collaborators
    "CommitResult",
    "ConfigurationPrompt",
    "NotificationSink",
    "PersistenceSink",
    "RollEngine",
    "UsageCommit",
    "InMemoryPersistence",
    "LoggingNotifier",
    # Workflows
    "ItemUseResult",
    "ItemUseWorkflow",
    "UseOptions",
    "ItemRolls",
    "RollRequest",
]
