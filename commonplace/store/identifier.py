#!/usr/bin/env python3
"""
identifier.py
-------------------
Canonical entry identifiers and their mapping to storage locations.

An identifier names one entry: a collection prefix (the domain module that
owns the entry, e.g. ``diary`` or ``contact``) followed by one or more name
segments, all joined with ``/``:

    diary/2024-01-01
    contact/alice
    bookmark/reading/python-docs

Canonical form:
    - Backslashes become ``/``, repeated and trailing separators collapse,
      a leading ``./`` is dropped
    - Unicode NFC normalization
    - At least two segments
    - No empty, ``.``, ``..`` or dot-prefixed segments (dot names are
      reserved for temporary files)
    - No control characters or any of ``: * ? " < > |``
    - No absolute paths

Each identifier maps to exactly one file: ``root/<segments...>.md``.
Equality, ordering and hashing use the canonical string only.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import unicodedata
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Tuple, Union

# --- Local imports ---
from commonplace.core.exceptions import MalformedError
from commonplace.core.paths import ENTRY_SUFFIX

SEPARATOR = "/"
RESERVED_CHARACTERS = frozenset(':*?"<>|')
MAX_SEGMENT_BYTES = 255 - len(ENTRY_SUFFIX)


def _validate_segment(segment: str, raw: str) -> None:
    """Reject segments that could escape the store or clash with reserved names."""
    if segment in (".", ".."):
        raise MalformedError(f"Path traversal segment '{segment}' in identifier '{raw}'")
    if segment.startswith("."):
        raise MalformedError(f"Hidden segment '{segment}' in identifier '{raw}'")
    if segment != segment.strip():
        raise MalformedError(
            f"Segment '{segment}' in identifier '{raw}' has surrounding whitespace"
        )
    for char in segment:
        if char in RESERVED_CHARACTERS:
            raise MalformedError(f"Reserved character {char!r} in identifier '{raw}'")
        if unicodedata.category(char).startswith("C"):
            raise MalformedError(f"Control character {char!r} in identifier '{raw}'")
    if len(segment.encode("utf-8")) > MAX_SEGMENT_BYTES:
        raise MalformedError(f"Segment too long in identifier '{raw}'")


def parse_prefix(prefix: str) -> Tuple[str, ...]:
    """
    Validate a collection prefix such as ``diary`` or ``bookmark/reading``.

    Returns:
        The prefix segments

    Raises:
        MalformedError: If the prefix is empty or contains an invalid segment
    """
    if not isinstance(prefix, str):
        raise MalformedError(f"Collection prefix must be a string, got {type(prefix).__name__}")
    text = unicodedata.normalize("NFC", prefix.strip()).replace("\\", SEPARATOR)
    if text.startswith(SEPARATOR):
        raise MalformedError(f"Absolute path not allowed as collection: '{prefix}'")
    segments = tuple(segment for segment in text.split(SEPARATOR) if segment)
    if not segments:
        raise MalformedError("Collection prefix is empty")
    for segment in segments:
        _validate_segment(segment, prefix)
    return segments


@dataclass(frozen=True, order=True)
class Identifier:
    """
    Canonical, hashable name of an entry.

    Build instances with ``Identifier.parse``; the constructor assumes the
    value is already canonical.

    Attributes:
        canonical: Normalized ``collection/name`` string

    Examples:
        >>> Identifier.parse("diary\\\\2024-01-01")
        Identifier('diary/2024-01-01')
        >>> Identifier.parse("../etc/passwd")
        Traceback (most recent call last):
        ...
        commonplace.core.exceptions.MalformedError: ...
    """

    canonical: str

    @classmethod
    def parse(cls, raw: Union[str, Identifier]) -> Identifier:
        """
        Normalize and validate a caller-supplied name.

        Args:
            raw: Name as typed by a user or built by a domain module

        Returns:
            Identifier in canonical form

        Raises:
            MalformedError: If the name is not a valid identifier
        """
        if isinstance(raw, Identifier):
            return raw
        if not isinstance(raw, str):
            raise MalformedError(
                f"Identifier must be a string, got {type(raw).__name__}"
            )

        text = unicodedata.normalize("NFC", raw.strip()).replace("\\", SEPARATOR)
        if not text:
            raise MalformedError("Identifier is empty")
        if text.startswith(SEPARATOR):
            raise MalformedError(f"Absolute path not allowed as identifier: '{raw}'")
        while text.startswith(f".{SEPARATOR}"):
            text = text[2:]

        segments = [segment for segment in text.split(SEPARATOR) if segment]
        if len(segments) < 2:
            raise MalformedError(
                f"Identifier '{raw}' needs a collection prefix and a name "
                "(e.g. 'diary/2024-01-01')"
            )
        for segment in segments:
            _validate_segment(segment, raw)

        return cls(SEPARATOR.join(segments))

    @classmethod
    def from_path(cls, root: Path, path: Path) -> Identifier:
        """
        Map a stored file back to its identifier.

        Args:
            root: Store root directory
            path: Entry file below ``root``

        Raises:
            MalformedError: If the file is outside the root, lacks the entry
                suffix, or its relative path is not a valid identifier
        """
        try:
            relative = PurePosixPath(Path(path).relative_to(root).as_posix())
        except ValueError as e:
            raise MalformedError(f"{path} is not inside store root {root}") from e
        if not relative.name.endswith(ENTRY_SUFFIX):
            raise MalformedError(f"{path} is not an entry file")
        stem = str(relative)[: -len(ENTRY_SUFFIX)]
        identifier = cls.parse(stem)
        if identifier.canonical != stem:
            raise MalformedError(f"{path} is not stored under its canonical name")
        return identifier

    # ---- Accessors ----
    @property
    def segments(self) -> Tuple[str, ...]:
        """All ``/``-separated segments."""
        return tuple(self.canonical.split(SEPARATOR))

    @property
    def collection(self) -> str:
        """Domain-module collection prefix (first segment)."""
        return self.segments[0]

    @property
    def name(self) -> str:
        """Name within the collection (everything after the prefix)."""
        return SEPARATOR.join(self.segments[1:])

    def in_collection(self, prefix: str) -> bool:
        """Check whether this identifier lives under ``prefix`` (segment-wise)."""
        wanted = parse_prefix(prefix)
        return self.segments[: len(wanted)] == wanted

    def to_path(self, root: Path) -> Path:
        """Storage location of this entry below ``root``."""
        *parents, last = self.segments
        return Path(root).joinpath(*parents, f"{last}{ENTRY_SUFFIX}")

    def __str__(self) -> str:
        return self.canonical

    def __repr__(self) -> str:
        return f"Identifier({self.canonical!r})"
