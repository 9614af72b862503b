#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the Commonplace store.

Every failure the store and the link graph report is one of a small, closed
set of kinds. Each exception class carries its kind in the ``kind`` class
attribute so front ends can branch on the kind without importing every class.

Exception Hierarchy:
    Exception (built-in)
    └── StoreError - Base for all store and link graph errors
        ├── NotFoundError - Entry (or link) does not exist
        ├── AlreadyExistsError - Entry location is already taken
        ├── LockedError - Entry is checked out by another handle
        ├── MalformedError - Bad identifier, header, tag or schema version
        │   └── ConfigError - Invalid configuration file or value
        ├── IOFailureError - Filesystem operation failed
        ├── LinkInconsistentError - One-sided or otherwise corrupt link
        └── HashMismatchError - External link fingerprint collision/mismatch

Usage:
    from commonplace.core.exceptions import LockedError, StoreError

    try:
        entry = store.retrieve("diary/2024-01-01")
    except LockedError:
        # Recoverable: retry once the other handle is released
        ...
    except StoreError as e:
        logger.error(f"{e.kind.value}: {e}")
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Closed set of failure kinds reported by the store."""

    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    LOCKED = "Locked"
    MALFORMED = "Malformed"
    IO_FAILURE = "IOFailure"
    LINK_INCONSISTENT = "LinkInconsistent"
    HASH_MISMATCH = "HashMismatch"


class StoreError(Exception):
    """
    Base exception for store and link graph errors.

    Catch this to handle any failure reported by the store, or catch the
    specific subclasses for more granular handling.

    Attributes:
        message: Error description
        identifier: Canonical identifier the error concerns, if any
        kind: ErrorKind of the failure (class attribute)

    Examples:
        >>> raise StoreError("Something went wrong", identifier="notes/todo")
    """

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(self, message: str, identifier: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.identifier = str(identifier) if identifier is not None else None


class NotFoundError(StoreError):
    """
    Exception for missing entries and missing links.

    Raised when:
    - Retrieving or deleting an identifier with no stored entry
    - Removing an internal or external link that is not present
    - Opening a store whose root does not exist (without implicit-create)

    Examples:
        >>> raise NotFoundError("No entry at diary/2024-01-01")
    """

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(StoreError):
    """
    Exception for creating an entry whose location is already taken.

    Examples:
        >>> raise AlreadyExistsError("Entry already exists: contact/alice")
    """

    kind = ErrorKind.ALREADY_EXISTS


class LockedError(StoreError):
    """
    Exception for checkout conflicts.

    Raised immediately (never after waiting) when an identifier is already
    checked out in this process, or when a handle is used after it was
    released. Recoverable: the caller may retry after the holder releases.

    Examples:
        >>> raise LockedError("Entry is checked out: contact/alice")
    """

    kind = ErrorKind.LOCKED


class MalformedError(StoreError):
    """
    Exception for invalid caller input and corrupt stored data.

    Raised when:
    - An identifier fails validation (traversal, empty segments, ...)
    - A header cannot be parsed or has an incompatible schema version
    - A typed header accessor finds a value of the wrong type
    - A tag name is invalid

    Never repaired automatically; surfaced to the user for inspection.

    Examples:
        >>> raise MalformedError("Header missing commonplace.version")
        >>> raise MalformedError("Expected string at diary.mood, found integer")
    """

    kind = ErrorKind.MALFORMED


class ConfigError(MalformedError):
    """
    Exception for invalid configuration.

    Examples:
        >>> raise ConfigError("store.implicit-create must be a boolean")
    """

    pass


class IOFailureError(StoreError):
    """
    Exception for filesystem failures.

    Wraps the underlying OSError (available as ``__cause__``) for reads,
    atomic writes, renames and deletions.

    Examples:
        >>> raise IOFailureError("Cannot write diary/2024-01-01: disk full")
    """

    kind = ErrorKind.IO_FAILURE


class LinkInconsistentError(StoreError):
    """
    Exception for corrupt link state.

    Raised when:
    - An internal link exists on only one of the two entries
    - A self-link is requested

    Never repaired automatically; surfaced to the user for inspection.

    Examples:
        >>> raise LinkInconsistentError("diary/2024-01-01 links contact/alice, not reciprocated")
    """

    kind = ErrorKind.LINK_INCONSISTENT


class HashMismatchError(StoreError):
    """
    Exception for external link fingerprint problems.

    Raised when a stored fingerprint does not match its locator, or when
    two different locators share one fingerprint.

    Examples:
        >>> raise HashMismatchError("Fingerprint 3f78... does not match locator")
    """

    kind = ErrorKind.HASH_MISMATCH
