"""Small helpers for dotted-path access into nested document data."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, MutableMapping
from typing import Any

from pydantic import BaseModel


_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def get_property(data: Any, path: str, default: Any = None) -> Any:
    """Read a value from nested mappings or models by dotted path.

    Args:
        data: A mapping, pydantic model, or plain object.
        path: Dotted path such as ``"abilities.dex.mod"``.
        default: Returned when any segment is missing.

    Returns:
        The resolved value or ``default``.
    """
    current = data
    for key in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            if key not in current:
                return default
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return default
            current = current[index]
        elif isinstance(current, BaseModel) or hasattr(current, key):
            current = getattr(current, key, default)
            if current is default:
                return default
        else:
            return default
    return current


def set_property(data: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write a value into nested mappings by dotted path, creating levels."""
    keys = path.split(".")
    current = data
    for key in keys[:-1]:
        nested = current.get(key)
        if not isinstance(nested, MutableMapping):
            nested = {}
            current[key] = nested
        current = nested
    current[keys[-1]] = value


def is_numeric(value: Any) -> bool:
    """Check whether a value is a finite number or a string holding one."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def slugify(name: str) -> str:
    """Convert a display name into an identifier slug.

    Example:
        >>> slugify("Arcane Recovery")
        'arcane-recovery'
    """
    return _SLUG_PATTERN.sub("-", name.lower()).strip("-")


__all__ = ["get_property", "set_property", "is_numeric", "slugify"]
