"""Contracts for the collaborators the engine talks to.

The engine never persists data, renders dialogs or sends messages itself.
It calls these protocols instead; ``dnd_items.engine.persistence`` ships an
in-memory persistence sink and a logging notifier.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from dnd_items.models.enums import NotificationKind


if TYPE_CHECKING:
    from dnd_items.engine.dice import RollOptions, RollOutcome
    from dnd_items.engine.formula import FormulaResult
    from dnd_items.engine.usage import UsageConfiguration
    from dnd_items.models.item import Item


class UsageCommit(BaseModel):
    """Updates to apply together as one usage event.

    Attributes:
        actor_id: Actor owning the updated documents.
        item_id: Item the updates originate from.
        actor_updates: Dotted-path updates to the actor.
        item_updates: Dotted-path updates to the item.
        resource_updates: Updates to other owned items, each with ``_id``.
        delete_item: Delete the item instead of updating it.
    """

    model_config = ConfigDict(frozen=True)

    actor_id: str
    item_id: str
    actor_updates: dict[str, Any] = Field(default_factory=dict)
    item_updates: dict[str, Any] = Field(default_factory=dict)
    resource_updates: tuple[dict[str, Any], ...] = ()
    delete_item: bool = False


class CommitResult(BaseModel):
    """Per-bucket outcome of a commit."""

    model_config = ConfigDict(frozen=True)

    actor_updated: bool = False
    item_updated: bool = False
    item_deleted: bool = False
    resources_updated: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@runtime_checkable
class PersistenceSink(Protocol):
    def commit(self, commit: UsageCommit) -> CommitResult: ...


@runtime_checkable
class NotificationSink(Protocol):
    def notify(
        self,
        kind: NotificationKind,
        message: str,
        link: str | None = None,
    ) -> None: ...


@runtime_checkable
class ConfigurationPrompt(Protocol):
    """Asks the user to confirm or adjust a usage; ``None`` cancels."""

    def prompt_usage(
        self,
        item: Item,
        configuration: UsageConfiguration,
    ) -> UsageConfiguration | None: ...


@runtime_checkable
class RollEngine(Protocol):
    def roll(
        self,
        formula: str,
        context: dict[str, Any] | None = None,
        options: RollOptions | None = None,
    ) -> RollOutcome: ...


@runtime_checkable
class FormulaEvaluatorProtocol(Protocol):
    def evaluate(self, formula: str | int | float, context: dict[str, Any]) -> FormulaResult: ...


__all__ = [
    "UsageCommit",
    "CommitResult",
    "PersistenceSink",
    "NotificationSink",
    "ConfigurationPrompt",
    "RollEngine",
    "FormulaEvaluatorProtocol",
]
