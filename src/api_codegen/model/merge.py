"""Merge policies and version ordering shared by the registries."""

import re
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel


class MergePolicy(str, Enum):
    """What to do when an incoming entity matches one already stored."""

    KEEP_EXISTING = "keep_existing"  # first definition wins (default)
    REPLACE = "replace"  # incoming fields overwrite, stored id is kept
    UNION = "union"  # fill unset fields, union collections


def is_unset(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def replace_fields(existing: BaseModel, incoming: BaseModel, skip: tuple[str, ...] = ("id",)) -> None:
    """Overwrite every field of existing with incoming's value."""
    for name in type(existing).model_fields:
        if name not in skip:
            setattr(existing, name, getattr(incoming, name))


def union_list(existing: list, incoming: list, key: Callable[[Any], Any]) -> list:
    """Append items from incoming whose key is not already present."""
    seen = {key(item) for item in existing}
    merged = list(existing)
    for item in incoming:
        k = key(item)
        if k not in seen:
            seen.add(k)
            merged.append(item)
    return merged


def fill_unset_fields(existing: BaseModel, incoming: BaseModel, skip: tuple[str, ...] = ("id",)) -> None:
    """Copy incoming scalar values onto fields existing leaves unset.

    Lists and dicts are left alone; callers union those with their own keys.
    """
    for name in type(existing).model_fields:
        if name in skip:
            continue
        current = getattr(existing, name)
        if isinstance(current, (list, dict)):
            continue
        if is_unset(current) and not is_unset(getattr(incoming, name)):
            setattr(existing, name, getattr(incoming, name))


_VERSION_SPLIT = re.compile(r"[.\-+_ ]+")


def version_key(version: str) -> tuple:
    """Sort key for loosely semantic version strings.

    "v2.10" > "2.9" > "2.9-beta"; numeric parts compare as numbers and outrank
    text parts in the same position.
    """
    parts = []
    for part in _VERSION_SPLIT.split(version.strip().lstrip("vV")):
        if not part:
            continue
        if part.isdigit():
            parts.append((1, int(part), ""))
        else:
            parts.append((0, 0, part.lower()))
    # end marker: a release outranks its own pre-release suffixes
    parts.append((0, 1, ""))
    return tuple(parts)
