"""Ordered observer callbacks for item usage extension points.

"Pre" events are called with ``call``: callbacks run in registration order
and the first one returning ``False`` vetoes the operation. Post events are
called with ``call_all``: every callback runs and return values are ignored.
Callbacks may mutate the mutable arguments they receive (for example the
usage configuration or the pending consumption updates).

Example:
    >>> hooks = HookRegistry()
    >>> hooks.register(HookEvent.PRE_USE_ITEM, lambda item, config, options: False)
    1
    >>> hooks.call(HookEvent.PRE_USE_ITEM, item, config, options)
    False
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from dnd_items.core.logging import get_logger


logger = get_logger(__name__)


HookCallback = Callable[..., Any]


class HookEvent(StrEnum):
    """Extension points fired during item use and rolls."""

    PRE_USE_ITEM = "pre_use_item"
    PRE_ITEM_USAGE_CONSUMPTION = "pre_item_usage_consumption"
    ITEM_USAGE_CONSUMPTION = "item_usage_consumption"
    USE_ITEM = "use_item"
    PRE_ROLL_ATTACK = "pre_roll_attack"
    ROLL_ATTACK = "roll_attack"
    PRE_ROLL_DAMAGE = "pre_roll_damage"
    ROLL_DAMAGE = "roll_damage"
    PRE_ROLL_FORMULA = "pre_roll_formula"
    ROLL_FORMULA = "roll_formula"
    PRE_ROLL_RECHARGE = "pre_roll_recharge"
    ROLL_RECHARGE = "roll_recharge"


class HookRegistry:
    """Registry of callbacks per hook event."""

    def __init__(self) -> None:
        self._callbacks: dict[HookEvent, list[tuple[int, HookCallback]]] = {}
        self._ids = itertools.count(1)

    def register(self, event: HookEvent, callback: HookCallback) -> int:
        """Register a callback.

        Args:
            event: Event to observe.
            callback: Called with the event's arguments.

        Returns:
            An id usable with ``unregister``.
        """
        hook_id = next(self._ids)
        self._callbacks.setdefault(event, []).append((hook_id, callback))
        logger.debug("Hook registered", hook_event=str(event), hook_id=hook_id)
        return hook_id

    def unregister(self, event: HookEvent, hook_id: int) -> bool:
        """Remove a callback. Returns whether it was registered."""
        callbacks = self._callbacks.get(event, [])
        remaining = [(cid, cb) for cid, cb in callbacks if cid != hook_id]
        self._callbacks[event] = remaining
        return len(remaining) != len(callbacks)

    def callbacks(self, event: HookEvent) -> list[HookCallback]:
        return [callback for _, callback in self._callbacks.get(event, [])]

    def call(self, event: HookEvent, *args: Any) -> bool:
        """Run callbacks in order until one returns ``False``.

        Returns:
            False if a callback vetoed, True otherwise.
        """
        for callback in self.callbacks(event):
            if callback(*args) is False:
                logger.info("Hook vetoed operation", hook_event=str(event))
                return False
        return True

    def call_all(self, event: HookEvent, *args: Any) -> None:
        """Run every callback, ignoring return values."""
        for callback in self.callbacks(event):
            callback(*args)


__all__ = ["HookCallback", "HookEvent", "HookRegistry"]
