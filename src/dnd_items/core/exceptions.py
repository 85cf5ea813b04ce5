"""Exception hierarchy for the item usage engine.

Every error derives from DndItemsError and carries a ``details`` mapping.
Subclasses name the keyword context they accept (``formula``, ``item_id``
and so on); context passed as ``None`` is left out of ``details``.

Resource shortages during an item use are NOT exceptions: the usage
resolver reports them as typed ``UsageFailure`` results. The classes here
cover programmer errors and malformed document data the caller must fix.

Example:
    >>> raise FormulaError("Unbalanced parentheses", formula="(1d6 + 2")
"""

from __future__ import annotations

from typing import Any, ClassVar


class DndItemsError(Exception):
    """Base exception for all item engine errors.

    Attributes:
        message: Human-readable error description.
        details: Extra context, including any keyword context accepted by
            the subclass.
    """

    context_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        unexpected = set(context) - set(self.context_fields)
        if unexpected:
            raise TypeError(
                f"{type(self).__name__} got unexpected context: {', '.join(sorted(unexpected))}"
            )
        self.message = message
        self.details = dict(details or {})
        self.details.update({key: value for key, value in context.items() if value is not None})
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} [{context}]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(DndItemsError):
    """Invalid settings or rules tables."""

    context_fields = ("config_key",)


class ValidationError(DndItemsError):
    """Actor or item data that does not validate, or an unknown document id."""

    context_fields = ("field_name", "invalid_value")


class RulesEngineError(DndItemsError):
    """Base for errors raised while applying game rules."""


class FormulaError(RulesEngineError):
    """A formula that cannot be parsed or evaluated.

    Derived-stat preparation records these as preparation warnings
    instead of letting them propagate.
    """

    context_fields = ("formula",)


class DiceRollError(RulesEngineError):
    """Dice notation the roller rejects."""

    context_fields = ("expression",)


class ItemUsageError(RulesEngineError):
    """An item asked to do something it cannot do.

    For example rolling an attack for an item with no attack, or using an
    item its actor does not own.
    """

    context_fields = ("item_id",)


__all__ = [
    "DndItemsError",
    "ConfigurationError",
    "ValidationError",
    "RulesEngineError",
    "FormulaError",
    "DiceRollError",
    "ItemUsageError",
]
