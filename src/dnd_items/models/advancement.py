"""Pydantic V2 schemas for item advancements.

An advancement is a leveling rule attached to an item (usually a class or
subclass): hit points gained every level, an ability score improvement, a
granted or chosen feature, or a value that scales with level. Items store
their advancements as raw records; ``parse_advancement`` validates one
record into the matching model and the advancement index skips records that
fail.

Example:
    >>> adv = parse_advancement({"_id": "a1", "type": "ItemGrant", "level": 3})
    >>> adv.applicable_levels(20)
    [3]
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
)

from dnd_items.core.utils import slugify
from dnd_items.models.enums import AdvancementKind


class AdvancementBase(BaseModel):
    """Common fields of every advancement.

    Attributes:
        id: Identifier, unique within the owning item.
        title: Custom title; the kind's default title is used when empty.
        level: Single level this advancement applies at, if any.
        configuration: Kind-specific configuration data.
        value: Kind-specific data recorded when the advancement is applied.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    order: ClassVar[int] = 100
    default_title: ClassVar[str] = "Advancement"

    id: str = Field(alias="_id", min_length=1)
    title: str = ""
    level: int | None = None
    configuration: dict[str, Any] = Field(default_factory=dict)
    value: dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> AdvancementKind:
        return AdvancementKind(getattr(self, "type"))

    @property
    def effective_title(self) -> str:
        return self.title or self.default_title

    def applicable_levels(self, max_level: int) -> list[int]:
        """Levels at which this advancement applies.

        Args:
            max_level: Highest supported character level.

        Returns:
            The level list; empty means the advancement needs configuration.
        """
        return [self.level] if self.level is not None else []

    def title_for_level(self, level: int) -> str:
        return self.effective_title

    def sorting_value_for_level(self, level: int) -> str:
        """Sort key inside a level bucket: zero-padded order, then title."""
        return f"{self.order:04d} {self.title_for_level(level)}"


class HitPointsAdvancement(AdvancementBase):
    """Hit points gained at every class level."""

    order: ClassVar[int] = 10
    default_title: ClassVar[str] = "Hit Points"

    type: Literal["HitPoints"] = "HitPoints"

    def applicable_levels(self, max_level: int) -> list[int]:
        return list(range(1, max_level + 1))


class AbilityScoreImprovementAdvancement(AdvancementBase):
    """Ability score improvement or feat at a single level."""

    order: ClassVar[int] = 20
    default_title: ClassVar[str] = "Ability Score Improvement"

    type: Literal["AbilityScoreImprovement"] = "AbilityScoreImprovement"


class ItemGrantAdvancement(AdvancementBase):
    """Features granted automatically at a single level."""

    order: ClassVar[int] = 40
    default_title: ClassVar[str] = "Grant Items"

    type: Literal["ItemGrant"] = "ItemGrant"


class ItemChoiceConfiguration(BaseModel):
    """Configuration of an ItemChoice advancement: picks offered per level."""

    model_config = ConfigDict(extra="allow")

    choices: dict[int, int] = Field(default_factory=dict)

    @field_validator("choices", mode="before")
    @classmethod
    def empty_choices(cls, value: Any) -> Any:
        return value or {}


class ItemChoiceAdvancement(AdvancementBase):
    """Features chosen from a pool, a number of picks per level.

    ``configuration.choices`` maps level to the number of picks offered.
    Records whose levels or counts are not integers fail validation.
    """

    order: ClassVar[int] = 50
    default_title: ClassVar[str] = "Choose Items"

    type: Literal["ItemChoice"] = "ItemChoice"
    configuration: ItemChoiceConfiguration = Field(  # type: ignore[assignment]
        default_factory=ItemChoiceConfiguration
    )

    @property
    def choices(self) -> dict[int, int]:
        return self.configuration.choices

    def applicable_levels(self, max_level: int) -> list[int]:
        return sorted(self.choices)

    def title_for_level(self, level: int) -> str:
        count = self.choices.get(level)
        if not count:
            return self.effective_title
        return f"{self.effective_title} (choose {count})"


class ScaleValueConfiguration(BaseModel):
    """Configuration of a ScaleValue advancement."""

    model_config = ConfigDict(extra="allow")

    identifier: str = ""
    scale: dict[int, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("identifier", "scale", mode="before")
    @classmethod
    def empty_values(cls, value: Any, info: ValidationInfo) -> Any:
        if value:
            return value
        return "" if info.field_name == "identifier" else {}


class ScaleValueAdvancement(AdvancementBase):
    """A value that changes at specific levels (e.g. sneak attack dice).

    ``configuration.scale`` maps level to a value record such as
    ``{"value": 2}`` or ``{"n": 3, "die": 6}``.
    """

    order: ClassVar[int] = 60
    default_title: ClassVar[str] = "Scale Value"

    type: Literal["ScaleValue"] = "ScaleValue"
    configuration: ScaleValueConfiguration = Field(  # type: ignore[assignment]
        default_factory=ScaleValueConfiguration
    )

    @property
    def identifier(self) -> str:
        return self.configuration.identifier or slugify(self.effective_title)

    @property
    def scale(self) -> dict[int, dict[str, Any]]:
        return self.configuration.scale

    def applicable_levels(self, max_level: int) -> list[int]:
        return sorted(self.scale)

    def value_for_level(self, level: int) -> dict[str, Any] | None:
        """Value at the greatest configured level not above ``level``.

        Args:
            level: Character or class level.

        Returns:
            The scale record, or None when no configured level applies yet.
        """
        scale = self.scale
        eligible = [configured for configured in scale if configured <= level]
        if not eligible:
            return None
        return scale[max(eligible)]

    def formula_for_level(self, level: int) -> str | None:
        """Render the value at ``level`` as a formula string."""
        entry = self.value_for_level(level)
        if entry is None:
            return None
        if entry.get("n") and entry.get("die"):
            return f"{entry['n']}d{entry['die']}"
        value = entry.get("value")
        return None if value is None else str(value)


Advancement = Annotated[
    HitPointsAdvancement
    | AbilityScoreImprovementAdvancement
    | ItemGrantAdvancement
    | ItemChoiceAdvancement
    | ScaleValueAdvancement,
    Field(discriminator="type"),
]

_ADVANCEMENT_ADAPTER: TypeAdapter[Advancement] = TypeAdapter(Advancement)


def parse_advancement(data: Any) -> Advancement:
    """Validate one raw advancement record.

    Args:
        data: Raw record (mapping) or an already built advancement.

    Returns:
        The advancement model for the record's ``type``.

    Raises:
        pydantic.ValidationError: If the record is not a known advancement.
    """
    if isinstance(data, AdvancementBase):
        return data  # type: ignore[return-value]
    return _ADVANCEMENT_ADAPTER.validate_python(data)


__all__ = [
    "AdvancementBase",
    "HitPointsAdvancement",
    "AbilityScoreImprovementAdvancement",
    "ItemGrantAdvancement",
    "ItemChoiceConfiguration",
    "ItemChoiceAdvancement",
    "ScaleValueConfiguration",
    "ScaleValueAdvancement",
    "Advancement",
    "parse_advancement",
]
