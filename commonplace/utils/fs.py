#!/usr/bin/env python3
"""
fs.py
-------------------
Filesystem utilities for entry persistence.

Provides atomic text writes (temporary file in the target directory, fsync,
rename into place) and lazy discovery of entry files.

Functions:
    atomic_write_text: Write a file so readers see the old or the new text, never a mix
    iter_entry_files: Lazily walk a directory tree for entry files
    is_hidden_name: Check for dot-prefixed (hidden/temporary) names
    remove_empty_parents: Prune directories left empty after a deletion

Usage:
    from commonplace.utils.fs import atomic_write_text, iter_entry_files

    atomic_write_text(root / "diary" / "2024-01-01.md", text)
    for path in iter_entry_files(root):
        ...

All functions raise the built-in OSError family; the store wraps them.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
import tempfile
from pathlib import Path
from typing import Iterator

# --- Local imports ---
from commonplace.core.paths import ENTRY_SUFFIX, TEMP_PREFIX, TEMP_SUFFIX


def is_hidden_name(name: str) -> bool:
    """Dot-prefixed names are reserved for temporary files and never entries."""
    return name.startswith(".")


def atomic_write_text(path: Path, text: str) -> None:
    """
    Atomically replace ``path`` with ``text`` (UTF-8).

    The text is written to a temporary file in the same directory, flushed
    and fsynced, then renamed over the target with ``os.replace``. A crash at
    any point leaves either the previous file or the new one.

    Args:
        path: Destination file
        text: Full file contents

    Raises:
        OSError: If any filesystem step fails (the temporary file is removed)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f"{TEMP_PREFIX}{path.name}.", suffix=TEMP_SUFFIX, dir=path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def iter_entry_files(directory: Path) -> Iterator[Path]:
    """
    Lazily yield entry files below ``directory`` in sorted order.

    Hidden files and directories (temporary files included) are skipped.
    Each directory is listed only when the walk reaches it.

    Args:
        directory: Root of the walk

    Yields:
        Paths of files ending in the entry suffix
    """
    directory = Path(directory)
    if not directory.is_dir():
        return

    with os.scandir(directory) as it:
        children = sorted(it, key=lambda e: e.name)

    for child in children:
        if is_hidden_name(child.name):
            continue
        if child.is_dir(follow_symlinks=False):
            yield from iter_entry_files(Path(child.path))
        elif child.is_file() and child.name.endswith(ENTRY_SUFFIX):
            yield Path(child.path)


def remove_empty_parents(path: Path, stop: Path) -> None:
    """
    Remove empty directories from ``path.parent`` up to (excluding) ``stop``.

    Stops at the first non-empty directory.
    """
    stop = Path(stop)
    current = Path(path).parent
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent
