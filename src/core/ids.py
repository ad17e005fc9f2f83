"""Helpers for working with feed item identifiers.

Ids are opaque strings from the feed, but they are always unsigned decimals
and can be longer than any machine integer, so ordering is done on the digit
string itself rather than by converting to int or float.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

_ID_PATTERN = re.compile(r"[0-9]+")

RECORD_PREFIX = "item_"
RECORD_SUFFIX = ".json"


def is_valid_id(value: object) -> bool:
    """Return True when the value looks like a feed item id."""

    return isinstance(value, str) and _ID_PATTERN.fullmatch(value) is not None


def id_sort_key(item_id: str) -> Tuple[int, str]:
    """Return a key that sorts numeric id strings by numeric value."""

    digits = item_id.lstrip("0") or "0"
    return len(digits), digits


def is_newer(candidate: str, current: Optional[str]) -> bool:
    """Return True when candidate orders strictly after current."""

    if current is None:
        return True
    return id_sort_key(candidate) > id_sort_key(current)


def max_id(ids: Iterable[str]) -> Optional[str]:
    """Return the highest id, or None for an empty iterable."""

    highest: Optional[str] = None
    for item_id in ids:
        if highest is None or is_newer(item_id, highest):
            highest = item_id
    return highest


def record_name(item_id: str) -> str:
    """Return the record file name for an id."""

    return f"{RECORD_PREFIX}{item_id}{RECORD_SUFFIX}"


def id_from_record_name(name: str) -> Optional[str]:
    """Parse the id back out of a record file name, if it is one."""

    if not (name.startswith(RECORD_PREFIX) and name.endswith(RECORD_SUFFIX)):
        return None
    candidate = name[len(RECORD_PREFIX) : -len(RECORD_SUFFIX)]
    if not is_valid_id(candidate):
        return None
    return candidate
