"""The item use workflow.

``ItemUseWorkflow.use`` runs one complete use of an item:

1. prepare the item and build its default usage configuration, merged with
   caller overrides;
2. fire ``pre_use_item`` (a veto cancels the use);
3. ask the configuration prompt when configuration is needed (``None``
   cancels the use);
4. clone and re-prepare spells cast with a different slot level;
5. fire ``pre_item_usage_consumption`` (veto);
6. resolve resource consumption (a shortage notifies and fails the use);
7. fire ``item_usage_consumption`` with the pending updates (veto);
8. commit all updates in one call to the persistence sink;
9. fire ``use_item``.

Cancellation or failure before step 8 leaves every document untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from dnd_items.core.config import RulesConfig
from dnd_items.core.logging import get_logger, usage_context
from dnd_items.engine.derived_stats import DerivedStatCalculator, PreparedItem
from dnd_items.engine.hooks import HookEvent, HookRegistry
from dnd_items.engine.interfaces import (
    CommitResult,
    ConfigurationPrompt,
    NotificationSink,
    PersistenceSink,
    UsageCommit,
)
from dnd_items.engine.persistence import LoggingNotifier
from dnd_items.engine.usage import (
    UsageConfiguration,
    UsageFailure,
    UsageResolver,
    default_usage_configuration,
)
from dnd_items.models.actor import Actor
from dnd_items.models.enums import ItemKind, NotificationKind, UsageOutcome
from dnd_items.models.item import Item


logger = get_logger(__name__)


class UseOptions(BaseModel):
    """Options for one item use.

    Attributes:
        configure_dialog: Ask the configuration prompt when configuration
            is needed.
    """

    model_config = ConfigDict(frozen=True)

    configure_dialog: bool = True


@dataclass(frozen=True)
class ItemUseResult:
    """Outcome of an item use.

    Attributes:
        outcome: Completed, cancelled or failed.
        item: The item used (the upcast clone for upcast spells).
        configuration: Final usage configuration, if one was settled.
        updates: Updates committed, by bucket.
        failure: Why resolution failed, if it did.
        commit: Persistence result, if a commit was attempted.
        template_requested: Whether an area template should be placed.
    """

    outcome: UsageOutcome
    item: Item
    configuration: UsageConfiguration | None = None
    updates: dict[str, Any] | None = None
    failure: UsageFailure | None = None
    commit: CommitResult | None = None
    template_requested: bool = False


class ItemUseWorkflow:
    """Runs item uses against injected collaborators.

    Args:
        rules: Rules tables.
        persistence: Sink receiving the usage commit.
        hooks: Hook registry; a fresh one when omitted.
        notifier: Sink for user-facing messages; logs when omitted.
        prompt: Configuration prompt; configuration is accepted as-is
            when omitted.
    """

    def __init__(
        self,
        rules: RulesConfig,
        persistence: PersistenceSink,
        *,
        hooks: HookRegistry | None = None,
        notifier: NotificationSink | None = None,
        prompt: ConfigurationPrompt | None = None,
    ) -> None:
        self.rules = rules
        self.persistence = persistence
        self.hooks = hooks or HookRegistry()
        self.notifier = notifier or LoggingNotifier()
        self.prompt = prompt
        self.calculator = DerivedStatCalculator(rules)
        self.resolver = UsageResolver(rules)

    def use(
        self,
        item: Item,
        actor: Actor,
        config_overrides: dict[str, Any] | None = None,
        options: UseOptions | None = None,
    ) -> ItemUseResult:
        """Use an item.

        Args:
            item: Item to use; must be owned by ``actor``.
            actor: The item's owner.
            config_overrides: Overrides for the default configuration.
            options: Use options.

        Returns:
            The use outcome.
        """
        options = options or UseOptions()
        with usage_context(actor_id=actor.id, item_id=item.id):
            return self._use(item, actor, config_overrides, options)

    def _use(
        self,
        item: Item,
        actor: Actor,
        config_overrides: dict[str, Any] | None,
        options: UseOptions,
    ) -> ItemUseResult:
        prepared = self.calculator.prepare(item, actor)
        configuration = default_usage_configuration(prepared, self.rules).merged(
            config_overrides
        )

        if not self.hooks.call(HookEvent.PRE_USE_ITEM, item, configuration, options):
            return self._cancelled(item, configuration)

        if options.configure_dialog and configuration.needs_configuration and self.prompt:
            chosen = self.prompt.prompt_usage(item, configuration)
            if chosen is None:
                logger.info("Item use cancelled at configuration", item=item.name)
                return self._cancelled(item, configuration)
            configuration = chosen

        prepared = self._upcast(prepared, actor, configuration)
        item = prepared.item

        if not self.hooks.call(
            HookEvent.PRE_ITEM_USAGE_CONSUMPTION, item, configuration, options
        ):
            return self._cancelled(item, configuration)

        resolution = self.resolver.resolve(prepared, actor, configuration)
        if isinstance(resolution, UsageFailure):
            self.notifier.notify(NotificationKind.WARNING, resolution.message, link=item.id)
            return ItemUseResult(
                outcome=UsageOutcome.FAILED,
                item=item,
                configuration=configuration,
                failure=resolution,
            )

        updates: dict[str, Any] = {
            "actor_updates": dict(resolution.actor_updates),
            "item_updates": dict(resolution.item_updates),
            "resource_updates": [dict(update) for update in resolution.resource_updates],
        }
        if not self.hooks.call(
            HookEvent.ITEM_USAGE_CONSUMPTION, item, updates, configuration, options
        ):
            return self._cancelled(item, configuration)

        commit_result = self._commit(item, actor, configuration, updates)
        if commit_result is not None and not commit_result.success:
            self.notifier.notify(
                NotificationKind.ERROR,
                f"Could not save the use of {item.name}: {commit_result.error}",
                link=item.id,
            )
            return ItemUseResult(
                outcome=UsageOutcome.FAILED,
                item=item,
                configuration=configuration,
                updates=updates,
                commit=commit_result,
            )

        self.hooks.call_all(HookEvent.USE_ITEM, item, configuration, options)
        logger.info("Item used", item=item.name, actor=actor.name)
        return ItemUseResult(
            outcome=UsageOutcome.COMPLETED,
            item=item,
            configuration=configuration,
            updates=updates,
            commit=commit_result,
            template_requested=configuration.create_measured_template,
        )

    def _cancelled(self, item: Item, configuration: UsageConfiguration) -> ItemUseResult:
        return ItemUseResult(
            outcome=UsageOutcome.CANCELLED,
            item=item,
            configuration=configuration,
        )

    def _upcast(
        self,
        prepared: PreparedItem,
        actor: Actor,
        configuration: UsageConfiguration,
    ) -> PreparedItem:
        """Clone a spell cast with a different slot level and re-prepare it."""
        item = prepared.item
        if item.type != ItemKind.SPELL or not configuration.consume_spell_slot:
            return prepared
        level = configuration.consume_spell_level
        if level == "pact":
            pact = actor.spells.get("pact")
            level = pact.level if pact is not None else None
        if not isinstance(level, int) or level == item.system.level:
            return prepared

        upcast = item.model_copy(
            update={"system": item.system.model_copy(update={"level": level})}
        )
        logger.debug("Spell upcast", item=item.name, base_level=item.system.level, level=level)
        return self.calculator.prepare(upcast, actor)

    def _commit(
        self,
        item: Item,
        actor: Actor,
        configuration: UsageConfiguration,
        updates: dict[str, Any],
    ) -> CommitResult | None:
        item_updates = updates["item_updates"]
        delete_item = (
            configuration.consume_quantity and item_updates.get("system.quantity") == 0
        )
        if not (updates["actor_updates"] or item_updates or updates["resource_updates"]):
            return None
        return self.persistence.commit(
            UsageCommit(
                actor_id=actor.id,
                item_id=item.id,
                actor_updates=updates["actor_updates"],
                item_updates=item_updates,
                resource_updates=tuple(updates["resource_updates"]),
                delete_item=delete_item,
            )
        )


__all__ = ["UseOptions", "ItemUseResult", "ItemUseWorkflow"]
