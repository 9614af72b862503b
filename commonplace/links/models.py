#!/usr/bin/env python3
"""
models.py
-------------------
Link values produced by the link graph.

Header storage (core namespace):

    commonplace:
      links:                      # internal, sorted canonical identifiers
        - contact/alice
      external:                   # external, insertion order
        - fingerprint: 3f786850e387550fdab836ed7e6dc881de23001b
          locator: https://example.org/
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass
from typing import Any, Dict, Union

# --- Local imports ---
from commonplace.core.exceptions import MalformedError
from commonplace.store.identifier import Identifier
from .fingerprint import Fingerprint, normalize_locator


@dataclass(frozen=True)
class InternalLink:
    """
    Reference to another entry.

    Attributes:
        peer: Identifier of the linked entry
        dangling: True if the peer no longer exists in the store
    """

    peer: Identifier
    dangling: bool = False

    @property
    def target(self) -> str:
        return self.peer.canonical


@dataclass(frozen=True)
class ExternalLink:
    """
    Reference to a resource outside the store.

    Attributes:
        locator: Normalized locator (URL, path, ...)
        fingerprint: Fingerprint of the locator
    """

    locator: str
    fingerprint: Fingerprint

    @property
    def target(self) -> str:
        return self.locator

    @classmethod
    def for_locator(cls, locator: str) -> ExternalLink:
        normalized = normalize_locator(locator)
        return cls(normalized, Fingerprint.of(normalized))

    @classmethod
    def from_record(cls, record: Any) -> ExternalLink:
        """
        Load a stored ``{fingerprint, locator}`` record.

        Raises:
            MalformedError: If the record does not have that shape
            HashMismatchError: If the fingerprint does not match the locator
        """
        if not isinstance(record, dict) or set(record) != {"fingerprint", "locator"}:
            raise MalformedError(f"Invalid external link record: {record!r}")
        locator = record["locator"]
        if not isinstance(locator, str):
            raise MalformedError(f"External link locator must be a string: {locator!r}")
        fingerprint = Fingerprint.parse(record["fingerprint"])
        fingerprint.verify(locator)
        return cls(locator, fingerprint)

    def to_record(self) -> Dict[str, str]:
        return {"fingerprint": self.fingerprint.digest, "locator": self.locator}


Link = Union[InternalLink, ExternalLink]
