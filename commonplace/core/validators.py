#!/usr/bin/env python3
"""
validators.py
--------------------
Validation helpers shared by the header, identifier and tag code.

All failures raise MalformedError; nothing is coerced.
"""
from __future__ import annotations

import re
from typing import Any, Tuple

from .exceptions import MalformedError

VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
TAG_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


class DataValidator:
    """Centralized validation for stored metadata."""

    @staticmethod
    def parse_version(value: Any) -> Tuple[int, int, int]:
        """
        Parse a MAJOR.MINOR.PATCH schema version string.

        Args:
            value: Raw value read from a header

        Returns:
            Tuple of (major, minor, patch)

        Raises:
            MalformedError: If the value is not a version string
        """
        if not isinstance(value, str):
            raise MalformedError(
                f"Schema version must be a string, found {type(value).__name__}"
            )
        match = VERSION_PATTERN.match(value.strip())
        if not match:
            raise MalformedError(f"Invalid schema version: '{value}'")
        major, minor, patch = (int(part) for part in match.groups())
        return major, minor, patch

    @staticmethod
    def validate_compatible_version(value: Any, current: str) -> None:
        """
        Check a stored schema version against the library's version.

        Versions are compatible when their major components are equal.

        Raises:
            MalformedError: If the version is invalid or incompatible
        """
        stored_major = DataValidator.parse_version(value)[0]
        current_major = DataValidator.parse_version(current)[0]
        if stored_major != current_major:
            raise MalformedError(
                f"Incompatible schema version {value} (supported: {current_major}.x)"
            )

    @staticmethod
    def validate_tag(tag: Any) -> str:
        """
        Validate a tag name.

        Args:
            tag: Candidate tag

        Returns:
            The tag unchanged

        Raises:
            MalformedError: If the tag does not match ``TAG_PATTERN``
        """
        if not isinstance(tag, str) or not TAG_PATTERN.match(tag):
            raise MalformedError(
                f"Invalid tag {tag!r}: must start with a letter and contain "
                "only letters, digits, '-' or '_'"
            )
        return tag
