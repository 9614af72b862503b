#!/usr/bin/env python3
"""
md.py
-------------------
Frontmatter framing for entry files.

An entry file is a YAML header block between two delimiter lines, a blank
separator line, then the body verbatim:

    ---
    commonplace:
      version: 1.0.0
    ---

    Body text here...

Unlike a general Markdown reader these helpers are lossless: the body is
returned byte-for-byte, including leading blank lines and the presence or
absence of a trailing newline. Only the first closing delimiter ends the
header, so the body may itself contain ``---`` lines.
"""
from __future__ import annotations

from typing import Optional, Tuple

DELIMITER = "---"
LINE_ENDINGS = ("\n", "\r\n")


def join_frontmatter(frontmatter: str, body: str) -> str:
    """
    Frame a YAML block and a body into entry file text.

    Args:
        frontmatter: YAML text (a trailing newline is added if missing)
        body: Body text, written verbatim

    Returns:
        Full file contents

    Examples:
        >>> join_frontmatter("a: 1\\n", "hello")
        '---\\na: 1\\n---\\n\\nhello'
    """
    if frontmatter and not frontmatter.endswith("\n"):
        frontmatter += "\n"
    return f"{DELIMITER}\n{frontmatter}{DELIMITER}\n\n{body}"


def _delimiter_width(content: str, position: int) -> int:
    """Length of the delimiter line starting at ``position`` (0 if there is none)."""
    for ending in LINE_ENDINGS:
        if content.startswith(DELIMITER + ending, position):
            return len(DELIMITER) + len(ending)
    return 0


def split_frontmatter(content: str) -> Optional[Tuple[str, str]]:
    """
    Split entry file text into YAML text and body.

    Delimiter lines and the separator line may end in ``\\n`` or ``\\r\\n``;
    the body is returned untouched either way.

    Args:
        content: Full file contents

    Returns:
        Tuple of (frontmatter_text, body), or None if the text does not open
        with a delimiter line or the header block is never closed

    Examples:
        >>> split_frontmatter("---\\na: 1\\n---\\n\\nBody")
        ('a: 1\\n', 'Body')
        >>> split_frontmatter("---\\r\\na: 1\\r\\n---\\r\\n\\r\\nBody")
        ('a: 1\\r\\n', 'Body')
        >>> split_frontmatter("no header") is None
        True
    """
    start = _delimiter_width(content, 0)
    if not start:
        return None

    position = start
    while True:
        width = _delimiter_width(content, position)
        if width:
            frontmatter = content[start:position]
            rest = content[position + width:]
            break
        if position + len(DELIMITER) == len(content) and content.endswith(DELIMITER):
            return content[start:position], ""
        newline = content.find("\n", position)
        if newline == -1:
            return None
        position = newline + 1

    # Exactly one blank separator line belongs to the framing
    for ending in LINE_ENDINGS:
        if rest.startswith(ending):
            return frontmatter, rest[len(ending):]
    return frontmatter, rest
