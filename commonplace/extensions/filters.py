#!/usr/bin/env python3
"""
filters.py
-------------------
Composable predicates over entries, and lazy selection from a store.

Predicates combine with ``&``, ``|`` and ``~``:

    recent_travel = InCollection("diary") & HasTag("travel") & ~FieldExists("diary.draft")
    for identifier in select(store, recent_travel):
        print(identifier)

Predicates only read the header; they never raise on a missing field or a
value of an unexpected type, they simply do not match.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import re
from typing import Any, Iterator, Optional, Pattern, Union

# --- Local imports ---
from commonplace.core.exceptions import MalformedError, NotFoundError
from commonplace.core.logging_manager import safe_logger
from commonplace.core.validators import DataValidator
from commonplace.store.entry import Entry
from commonplace.store.header import ValueType, parse_path
from commonplace.store.identifier import Identifier, parse_prefix
from commonplace.store.manager import Store
from .tags import TAGS_PATH

_MISSING = object()


class Filter:
    """Base predicate; subclasses implement ``matches``."""

    def matches(self, entry: Entry) -> bool:
        raise NotImplementedError

    def __call__(self, entry: Entry) -> bool:
        return self.matches(entry)

    def __and__(self, other: Filter) -> Filter:
        return _All(self, other)

    def __or__(self, other: Filter) -> Filter:
        return _Any(self, other)

    def __invert__(self) -> Filter:
        return _Not(self)


class _All(Filter):
    def __init__(self, *filters: Filter) -> None:
        self.filters = filters

    def matches(self, entry: Entry) -> bool:
        return all(f.matches(entry) for f in self.filters)

    def __repr__(self) -> str:
        return "(" + " & ".join(repr(f) for f in self.filters) + ")"


class _Any(Filter):
    def __init__(self, *filters: Filter) -> None:
        self.filters = filters

    def matches(self, entry: Entry) -> bool:
        return any(f.matches(entry) for f in self.filters)

    def __repr__(self) -> str:
        return "(" + " | ".join(repr(f) for f in self.filters) + ")"


class _Not(Filter):
    def __init__(self, inner: Filter) -> None:
        self.inner = inner

    def matches(self, entry: Entry) -> bool:
        return not self.inner.matches(entry)

    def __repr__(self) -> str:
        return f"~{self.inner!r}"


class _FieldFilter(Filter):
    """Predicate on the value at one header path."""

    def __init__(self, path: str) -> None:
        parse_path(path)
        self.path = path

    def _value(self, entry: Entry) -> Any:
        return entry.header.read(self.path, _MISSING)


class FieldExists(_FieldFilter):
    def matches(self, entry: Entry) -> bool:
        return self.path in entry.header

    def __repr__(self) -> str:
        return f"FieldExists({self.path!r})"


class FieldEq(_FieldFilter):
    """Value at ``path`` equals ``value`` (same type; ``1`` never equals ``True``)."""

    def __init__(self, path: str, value: Any) -> None:
        super().__init__(path)
        self.value = value

    def matches(self, entry: Entry) -> bool:
        found = self._value(entry)
        if found is _MISSING or type(found) is not type(self.value):
            return False
        return found == self.value

    def __repr__(self) -> str:
        return f"FieldEq({self.path!r}, {self.value!r})"


class FieldGrep(_FieldFilter):
    """String value at ``path`` contains a match for ``pattern``."""

    def __init__(self, path: str, pattern: Union[str, Pattern[str]]) -> None:
        super().__init__(path)
        try:
            self.pattern = re.compile(pattern)
        except re.error as e:
            raise MalformedError(f"Invalid pattern {pattern!r}: {e}") from e

    def matches(self, entry: Entry) -> bool:
        found = self._value(entry)
        return isinstance(found, str) and self.pattern.search(found) is not None

    def __repr__(self) -> str:
        return f"FieldGrep({self.path!r}, {self.pattern.pattern!r})"


class FieldIsType(_FieldFilter):
    def __init__(self, path: str, kind: ValueType) -> None:
        super().__init__(path)
        if not isinstance(kind, ValueType):
            raise MalformedError(f"Expected a ValueType, got {kind!r}")
        self.kind = kind

    def matches(self, entry: Entry) -> bool:
        return entry.header.type_of(self.path) is self.kind

    def __repr__(self) -> str:
        return f"FieldIsType({self.path!r}, {self.kind})"


class HasTag(Filter):
    def __init__(self, tag: str) -> None:
        self.tag = DataValidator.validate_tag(tag)

    def matches(self, entry: Entry) -> bool:
        tags = entry.header.read(TAGS_PATH)
        return isinstance(tags, list) and self.tag in tags

    def __repr__(self) -> str:
        return f"HasTag({self.tag!r})"


class InCollection(Filter):
    def __init__(self, prefix: str) -> None:
        parse_prefix(prefix)
        self.prefix = prefix

    def matches(self, entry: Entry) -> bool:
        return entry.identifier.in_collection(self.prefix)

    def __repr__(self) -> str:
        return f"InCollection({self.prefix!r})"


def select(store: Store, predicate: Filter, collection: Optional[str] = None) -> Iterator[Identifier]:
    """
    Lazily yield identifiers of stored entries matching ``predicate``.

    Each entry is checked out only while the predicate runs and is discarded
    unwritten. Entries deleted during the walk are skipped.

    Raises:
        LockedError: If a candidate entry is checked out by another handle
        MalformedError: If a candidate entry cannot be parsed
    """
    logger = safe_logger(store.logger)
    for identifier in store.ids(collection):
        try:
            entry = store.retrieve(identifier)
        except NotFoundError:
            logger.log_debug("select_skipped_deleted", {"identifier": str(identifier)})
            continue
        try:
            matched = predicate.matches(entry)
        finally:
            store.discard(entry)
        if matched:
            yield identifier
