"""Reference persistence and notification sinks.

``InMemoryPersistence`` stores actors by id and applies a ``UsageCommit``
atomically: all buckets are applied to a copy of the actor's data, the copy
is validated, and only then swapped in. If any bucket cannot be applied the
stored actor is left untouched.

``LoggingNotifier`` delivers user-facing notifications through structlog.
"""

from __future__ import annotations

from typing import Any

import pydantic

from dnd_items.core.exceptions import ValidationError
from dnd_items.core.logging import get_logger
from dnd_items.core.utils import set_property
from dnd_items.engine.interfaces import CommitResult, UsageCommit
from dnd_items.models.actor import Actor
from dnd_items.models.enums import NotificationKind


logger = get_logger(__name__)


class InMemoryPersistence:
    """Actor store applying usage commits atomically.

    Example:
        >>> store = InMemoryPersistence([actor])
        >>> result = store.commit(UsageCommit(actor_id=actor.id, item_id=bow.id,
        ...                                   item_updates={"system.quantity": 0}))
        >>> result.success
        True
    """

    def __init__(self, actors: list[Actor] | None = None) -> None:
        self._actors: dict[str, Actor] = {}
        for actor in actors or []:
            self.add_actor(actor)

    def add_actor(self, actor: Actor) -> None:
        self._actors[actor.id] = actor

    def get_actor(self, actor_id: str) -> Actor:
        """Fetch a stored actor.

        Raises:
            ValidationError: If no actor has this id.
        """
        try:
            return self._actors[actor_id]
        except KeyError as exc:
            raise ValidationError(
                f"Unknown actor: {actor_id}",
                field_name="actor_id",
                invalid_value=actor_id,
            ) from exc

    def commit(self, commit: UsageCommit) -> CommitResult:
        """Apply every bucket of a commit, or none of them.

        Args:
            commit: The updates to apply.

        Returns:
            Which buckets were applied, or the error that prevented the commit.
        """
        actor = self._actors.get(commit.actor_id)
        if actor is None:
            return CommitResult(error=f"Unknown actor: {commit.actor_id}")

        data = actor.model_dump(by_alias=True)
        items: list[dict[str, Any]] = data["items"]

        def find_item(item_id: str) -> dict[str, Any] | None:
            return next((item for item in items if item["_id"] == item_id), None)

        for path, value in commit.actor_updates.items():
            set_property(data, path, value)

        item = find_item(commit.item_id)
        if item is None and (commit.item_updates or commit.delete_item):
            return CommitResult(error=f"Unknown item: {commit.item_id}")
        if commit.delete_item:
            items.remove(item)
        else:
            for path, value in commit.item_updates.items():
                set_property(item, path, value)

        for update in commit.resource_updates:
            resource = find_item(update.get("_id", ""))
            if resource is None:
                return CommitResult(error=f"Unknown resource item: {update.get('_id')}")
            for path, value in update.items():
                if path != "_id":
                    set_property(resource, path, value)

        try:
            updated = Actor.model_validate(data)
        except pydantic.ValidationError as exc:
            logger.warning("Usage commit rejected", actor_id=commit.actor_id, error=str(exc))
            return CommitResult(error=str(exc))

        updated.preparation_warnings.extend(actor.preparation_warnings)
        self._actors[updated.id] = updated
        logger.debug(
            "Usage committed",
            actor_id=commit.actor_id,
            item_id=commit.item_id,
            deleted=commit.delete_item,
        )
        return CommitResult(
            actor_updated=bool(commit.actor_updates),
            item_updated=bool(commit.item_updates) and not commit.delete_item,
            item_deleted=commit.delete_item,
            resources_updated=bool(commit.resource_updates),
        )


class LoggingNotifier:
    """Notification sink writing to the structured log."""

    def notify(
        self,
        kind: NotificationKind,
        message: str,
        link: str | None = None,
    ) -> None:
        match kind:
            case NotificationKind.ERROR:
                logger.error(message, link=link)
            case NotificationKind.WARNING:
                logger.warning(message, link=link)
            case _:
                logger.info(message, link=link)


__all__ = ["InMemoryPersistence", "LoggingNotifier"]
