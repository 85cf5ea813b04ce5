"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndItemsError: Base exception for all engine errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Data validation errors.
        FormulaError: Formula parsing/evaluation errors.
        DiceRollError: Dice expression errors.
        ItemUsageError: Invalid operation requested of an item.

    Configuration:
        Settings: Main application settings class.
        RulesConfig: Immutable rules tables injected into the engine.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        usage_context: Scope log context to one item use.
"""

from __future__ import annotations

from dnd_items.core.config import (
    RulesConfig,
    RulesSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_items.core.exceptions import (
    ConfigurationError,
    DiceRollError,
    DndItemsError,
    FormulaError,
    ItemUsageError,
    RulesEngineError,
    ValidationError,
)
from dnd_items.core.logging import (
    configure_logging,
    get_logger,
    usage_context,
)


__all__ = [
    # Exceptions
    "DndItemsError",
    "ConfigurationError",
    "ValidationError",
    "RulesEngineError",
    "FormulaError",
    "DiceRollError",
    "ItemUsageError",
    # Configuration
    "Settings",
    "RulesSettings",
    "RulesConfig",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "usage_context",
]
