#!/usr/bin/env python3
"""
config.py
--------------------
Store configuration loaded from YAML.

Expected layout (every key optional):

    store:
      implicit-create: true     # create the store root if it is missing
    logging:
      level: info               # console level: debug, info, warning, error
      dir: ~/.commonplace/logs  # rotating log files; omit to disable

A missing file yields the defaults. Invalid YAML or a value of the wrong
type raises ConfigError; values are never coerced.

Usage:
    from commonplace.core.config import StoreConfig

    config = StoreConfig.from_file(CONFIG_PATH)
    if config.implicit_create:
        ...
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

# --- Third party imports ---
import yaml

# --- Local imports ---
from .exceptions import ConfigError

VALID_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a top-level mapping section, or an empty one if absent."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for a Store instance.

    Attributes:
        implicit_create: Create the store root directory when it is missing
        log_level: Console log level name (lowercase)
        log_dir: Directory for rotating log files, or None to disable file logs
    """

    implicit_create: bool = False
    log_level: str = "warning"
    log_dir: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> StoreConfig:
        """
        Build a configuration from a parsed YAML document.

        Args:
            data: Parsed document (None is treated as empty)

        Returns:
            StoreConfig instance

        Raises:
            ConfigError: If a section or value has the wrong type
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("Configuration document must be a mapping")

        store = _section(data, "store")
        implicit_create = store.get("implicit-create", False)
        if not isinstance(implicit_create, bool):
            raise ConfigError("store.implicit-create must be a boolean")

        logging_section = _section(data, "logging")
        level = logging_section.get("level", "warning")
        if not isinstance(level, str) or level.lower() not in VALID_LOG_LEVELS:
            valid = ", ".join(sorted(VALID_LOG_LEVELS))
            raise ConfigError(f"logging.level must be one of: {valid}")

        log_dir = logging_section.get("dir")
        if log_dir is not None and not isinstance(log_dir, str):
            raise ConfigError("logging.dir must be a string path")

        return cls(
            implicit_create=implicit_create,
            log_level=level.lower(),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
        )

    @classmethod
    def from_file(cls, path: Path) -> StoreConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the configuration file

        Returns:
            StoreConfig instance (defaults if the file does not exist)

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e

        return cls.from_dict(data)
