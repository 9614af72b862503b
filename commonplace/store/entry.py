#!/usr/bin/env python3
"""
entry.py
-------------------
In-memory unit of stored data: one identifier, one header, one body.

An Entry is only ever handed out by the Store as an exclusive checkout.
Callers read and mutate ``entry.header`` and ``entry.content`` freely and
give the entry back with ``Store.release`` (or let ``Store.checkout`` do
it), at which point it is written only if something changed.

On-disk text form:

    ---
    <YAML header>
    ---

    <body, verbatim>
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import logging
from typing import Optional

# --- Local imports ---
from commonplace.core.exceptions import MalformedError
from commonplace.utils.md import join_frontmatter, split_frontmatter
from .header import Header
from .identifier import Identifier

logger = logging.getLogger(__name__)


class Entry:
    """
    Header plus content addressed by an Identifier.

    Attributes:
        identifier: Canonical identifier (read-only)
        header: Mutable metadata document
        content: Body text

    Dirty tracking compares the current serialization with the text the
    entry was loaded from, so in-place edits of nested header values are
    detected without any explicit notification.
    """

    def __init__(
        self,
        identifier: Identifier,
        header: Optional[Header] = None,
        content: str = "",
        loaded_text: Optional[str] = None,
    ) -> None:
        """
        Args:
            identifier: Canonical identifier
            header: Header (a default one is created if None)
            content: Body text
            loaded_text: On-disk text this entry was parsed from; None marks
                a new entry that has never been written
        """
        if not isinstance(content, str):
            raise MalformedError(f"Entry content must be a string, got {type(content).__name__}")
        self._identifier = identifier
        self._header = header if header is not None else Header()
        self._content = content
        self._loaded_text = loaded_text
        # Canonical rendering of the loaded state; hand-formatted files are
        # not rewritten unless their contents actually change
        self._clean_text = self.to_text() if loaded_text is not None else None
        self._token: Optional[str] = None

    # ---- Construction / serialization ----
    @classmethod
    def from_text(cls, identifier: Identifier, text: str) -> Entry:
        """
        Parse on-disk text into an Entry.

        Raises:
            MalformedError: If the framing, the YAML or the schema version is invalid
        """
        parts = split_frontmatter(text)
        if parts is None:
            raise MalformedError(
                f"Entry {identifier} has no header block (must start with ---)",
                identifier=identifier,
            )
        frontmatter, body = parts
        try:
            header = Header.from_yaml(frontmatter)
        except MalformedError as e:
            raise MalformedError(f"Entry {identifier}: {e.message}", identifier=identifier) from e

        logger.debug(f"Parsed {identifier}: {len(header.namespaces())} namespaces, {len(body)} chars")
        return cls(identifier, header, body, loaded_text=text)

    def to_text(self) -> str:
        """Canonical on-disk text."""
        return join_frontmatter(self._header.to_yaml(), self._content)

    # ---- Accessors ----
    @property
    def identifier(self) -> Identifier:
        return self._identifier

    @property
    def header(self) -> Header:
        return self._header

    @header.setter
    def header(self, value: Header) -> None:
        if not isinstance(value, Header):
            raise MalformedError("Entry header must be a Header instance")
        self._header = value

    @property
    def content(self) -> str:
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        if not isinstance(value, str):
            raise MalformedError(f"Entry content must be a string, got {type(value).__name__}")
        self._content = value

    # ---- State ----
    @property
    def is_new(self) -> bool:
        """True until the entry has been written for the first time."""
        return self._loaded_text is None

    @property
    def is_dirty(self) -> bool:
        """True if the entry must be written back."""
        return self.is_new or self.to_text() != self._clean_text

    @property
    def is_checked_out(self) -> bool:
        return self._token is not None

    @property
    def loaded_text(self) -> Optional[str]:
        """Text as last read from or written to disk."""
        return self._loaded_text

    def mark_clean(self, text: str) -> None:
        """Record ``text`` as the on-disk state (called by the store after a write)."""
        self._loaded_text = text
        self._clean_text = text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return (
            self._identifier == other._identifier
            and self._header == other._header
            and self._content == other._content
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "dirty" if self.is_dirty else "clean"
        return f"Entry({self._identifier.canonical!r}, {state})"
