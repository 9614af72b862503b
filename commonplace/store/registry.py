#!/usr/bin/env python3
"""
registry.py
-------------------
In-process checkout registry: identifier -> checkout token.

Guarantees at most one live handle per identifier within a process. All
operations take a single mutex for a few dictionary operations and never
wait on anything else: a conflicting acquisition fails immediately with
LockedError and the caller decides whether to retry.

Cross-process exclusion is not provided; two processes may still race on
the same file.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import threading
import uuid
from typing import Dict, List

# --- Local imports ---
from commonplace.core.exceptions import LockedError
from .identifier import Identifier


class CheckoutRegistry:
    """
    Thread-safe map of checked-out identifiers.

    Usage:
        registry = CheckoutRegistry()
        token = registry.acquire(identifier)
        try:
            ...
        finally:
            registry.release(identifier, token)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: Dict[Identifier, str] = {}

    def acquire(self, identifier: Identifier) -> str:
        """
        Check out ``identifier``.

        Returns:
            Opaque token proving ownership of the checkout

        Raises:
            LockedError: If the identifier is already checked out
        """
        with self._lock:
            if identifier in self._tokens:
                raise LockedError(
                    f"Entry is checked out by another handle: {identifier}",
                    identifier=identifier,
                )
            token = uuid.uuid4().hex
            self._tokens[identifier] = token
            return token

    def release(self, identifier: Identifier, token: str) -> None:
        """
        Free a checkout.

        Raises:
            LockedError: If ``token`` does not own the checkout
        """
        with self._lock:
            if self._tokens.get(identifier) != token:
                raise LockedError(
                    f"Handle does not hold the checkout for {identifier}",
                    identifier=identifier,
                )
            del self._tokens[identifier]

    def holds(self, identifier: Identifier, token: str) -> bool:
        """Check whether ``token`` currently owns ``identifier``."""
        with self._lock:
            return token is not None and self._tokens.get(identifier) == token

    def is_checked_out(self, identifier: Identifier) -> bool:
        with self._lock:
            return identifier in self._tokens

    def checked_out(self) -> List[Identifier]:
        """Snapshot of all checked-out identifiers, sorted."""
        with self._lock:
            return sorted(self._tokens)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
