#!/usr/bin/env python3
"""
fingerprint.py
-------------------
Content fingerprints for external link targets.

An external resource (a URL, a file path, any locator string) is identified
by the SHA-1 hex digest of its normalized locator. Normalization strips
surrounding whitespace and lower-cases the scheme and host of URLs, so
``HTTPS://Example.org/a`` and ``https://example.org/a`` share a fingerprint
while paths and queries stay case-sensitive.

Note: SHA-1 gives a stable identity for de-duplication, not security.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import hashlib
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

# --- Local imports ---
from commonplace.core.exceptions import HashMismatchError, MalformedError

ALGORITHM = "sha1"
DIGEST_LENGTH = 40


def normalize_locator(locator: str) -> str:
    """
    Canonical form of a locator.

    Raises:
        MalformedError: If the locator is not a non-empty string

    Examples:
        >>> normalize_locator("  HTTPS://Example.org/Path ")
        'https://example.org/Path'
        >>> normalize_locator("/home/me/notes.txt")
        '/home/me/notes.txt'
    """
    if not isinstance(locator, str):
        raise MalformedError(f"Locator must be a string, got {type(locator).__name__}")
    text = locator.strip()
    if not text:
        raise MalformedError("Locator is empty")
    if "\n" in text or "\r" in text:
        raise MalformedError("Locator must be a single line")

    parts = urlsplit(text)
    if parts.scheme and parts.netloc:
        return urlunsplit(
            (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment)
        )
    return text


@dataclass(frozen=True)
class Fingerprint:
    """
    Fingerprint of an external resource.

    Attributes:
        digest: Lowercase hex digest of the normalized locator
    """

    digest: str

    @classmethod
    def of(cls, locator: str) -> Fingerprint:
        """Compute the fingerprint of ``locator``."""
        normalized = normalize_locator(locator)
        return cls(hashlib.sha1(normalized.encode("utf-8")).hexdigest())

    @classmethod
    def parse(cls, raw: object) -> Fingerprint:
        """
        Validate a stored digest.

        Raises:
            HashMismatchError: If ``raw`` is not a well-formed hex digest
        """
        if (
            not isinstance(raw, str)
            or len(raw) != DIGEST_LENGTH
            or any(char not in "0123456789abcdef" for char in raw)
        ):
            raise HashMismatchError(f"Stored fingerprint is not a {ALGORITHM} digest: {raw!r}")
        return cls(raw)

    def matches(self, locator: str) -> bool:
        return Fingerprint.of(locator) == self

    def verify(self, locator: str) -> None:
        """
        Raises:
            HashMismatchError: If ``locator`` does not hash to this fingerprint
        """
        if not self.matches(locator):
            raise HashMismatchError(
                f"Fingerprint {self.digest} does not match locator '{locator}'"
            )

    def __str__(self) -> str:
        return self.digest
