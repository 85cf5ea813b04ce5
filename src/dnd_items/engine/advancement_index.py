"""Index of an item's advancements by id, level and kind."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import pydantic

from dnd_items.core.logging import get_logger
from dnd_items.models.advancement import Advancement, parse_advancement
from dnd_items.models.enums import ItemKind


logger = get_logger(__name__)


@dataclass(frozen=True)
class AdvancementIndex:
    """Lookup tables over an item's advancements.

    Attributes:
        by_id: Advancement by id.
        by_level: Level to advancements applying at it, sorted by their
            sort key for that level.
        by_kind: Kind tag to advancements in insertion order.
        needing_configuration: Advancements with no applicable levels.
    """

    by_id: dict[str, Advancement] = field(default_factory=dict)
    by_level: dict[int, list[Advancement]] = field(default_factory=dict)
    by_kind: dict[str, list[Advancement]] = field(default_factory=dict)
    needing_configuration: list[Advancement] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        item_kind: ItemKind,
        raw_advancements: Iterable[Any],
        max_level: int,
    ) -> "AdvancementIndex":
        """Build the index from raw advancement records.

        Records that are not valid advancements are skipped. Levels outside
        the bucket range are ignored.

        Args:
            item_kind: Kind of the owning item; class and subclass buckets
                start at level 1, all others at level 0.
            raw_advancements: Raw records in stored order.
            max_level: Highest level bucket.

        Returns:
            The populated index.
        """
        min_level = 1 if item_kind.has_advancement_from_level_one else 0
        index = cls(by_level={level: [] for level in range(min_level, max_level + 1)})

        for raw in raw_advancements:
            try:
                advancement = parse_advancement(raw)
            except pydantic.ValidationError as exc:
                logger.debug(
                    "Skipping malformed advancement",
                    item_kind=str(item_kind),
                    errors=exc.error_count(),
                )
                continue

            index.by_id[advancement.id] = advancement
            index.by_kind.setdefault(advancement.type, []).append(advancement)

            levels = advancement.applicable_levels(max_level)
            if not levels:
                index.needing_configuration.append(advancement)
                continue
            for level in levels:
                bucket = index.by_level.get(level)
                if bucket is not None:
                    bucket.append(advancement)

        for level, bucket in index.by_level.items():
            bucket.sort(key=lambda adv, lvl=level: adv.sorting_value_for_level(lvl))

        return index

    def for_level(self, level: int) -> list[Advancement]:
        return list(self.by_level.get(level, []))


__all__ = ["AdvancementIndex"]
