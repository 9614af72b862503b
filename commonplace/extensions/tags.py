#!/usr/bin/env python3
"""
tags.py
-------------------
Tag sets stored in the core header namespace.

Tags live at ``commonplace.tags`` as a sorted list without duplicates and
must match ``^[a-zA-Z][a-zA-Z0-9_-]*$``. All functions operate on an entry
the caller already holds; nothing is written until the entry is released.

    with store.checkout("diary/2024-01-01") as entry:
        add_tag(entry, "travel")
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Iterable, List

# --- Local imports ---
from commonplace.core.exceptions import MalformedError
from commonplace.core.validators import DataValidator
from commonplace.store.entry import Entry
from commonplace.store.header import CORE_NAMESPACE

TAGS_PATH = f"{CORE_NAMESPACE}.tags"


def get_tags(entry: Entry) -> List[str]:
    """
    Tags of ``entry`` in sorted order.

    Raises:
        MalformedError: If the stored value is not a list of valid tags
    """
    tags = entry.header.get_list(TAGS_PATH, [])
    return [DataValidator.validate_tag(tag) for tag in tags]


def has_tag(entry: Entry, tag: str) -> bool:
    return DataValidator.validate_tag(tag) in get_tags(entry)


def set_tags(entry: Entry, tags: Iterable[str]) -> List[str]:
    """
    Replace the tag set of ``entry``.

    An empty set removes the field from the header.

    Returns:
        The stored (sorted, de-duplicated) tags
    """
    if isinstance(tags, str):
        raise MalformedError("Tags must be given as a collection, not a single string")
    canonical = sorted({DataValidator.validate_tag(tag) for tag in tags})
    if canonical:
        entry.header.set(TAGS_PATH, canonical)
    else:
        entry.header.delete(TAGS_PATH)
    return canonical


def add_tag(entry: Entry, tag: str) -> bool:
    """
    Add ``tag`` to ``entry``.

    Returns:
        False if the entry already carried the tag
    """
    tags = get_tags(entry)
    if DataValidator.validate_tag(tag) in tags:
        return False
    set_tags(entry, [*tags, tag])
    return True


def remove_tag(entry: Entry, tag: str) -> bool:
    """
    Remove ``tag`` from ``entry``.

    Returns:
        False if the entry did not carry the tag
    """
    tags = get_tags(entry)
    if DataValidator.validate_tag(tag) not in tags:
        return False
    set_tags(entry, [existing for existing in tags if existing != tag])
    return True
