#!/usr/bin/env python3
"""
paths.py
-------------------
Default locations for the Commonplace store.

All defaults hang off a single home directory, taken from the
``COMMONPLACE_HOME`` environment variable or ``~/.commonplace``:

    HOME/
    ├── store/         # Entries, one directory per collection
    └── config.yaml    # Store and logging configuration

File logging is off unless ``logging.dir`` (or ``--log-dir``) names a
directory; ``~/.commonplace/logs`` is the conventional choice.

Nothing is created at import time; the store decides whether a missing
root may be created (see ``store.implicit-create`` in the configuration).
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from pathlib import Path

HOME_ENV_VAR = "COMMONPLACE_HOME"


def get_home() -> Path:
    """Resolve the Commonplace home directory from the environment."""
    raw = os.environ.get(HOME_ENV_VAR) or "~/.commonplace"
    return Path(raw).expanduser()


# ----- Defaults -----
HOME: Path = get_home()
STORE_DIR = HOME / "store"
CONFIG_PATH = HOME / "config.yaml"

# ----- Store layout -----
ENTRY_SUFFIX = ".md"
TEMP_PREFIX = "."
TEMP_SUFFIX = ".tmp"
