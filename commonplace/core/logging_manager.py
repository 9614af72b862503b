#!/usr/bin/env python3
"""
logging_manager.py
--------------------
Logging for store, link graph and front-end operations.

Each store component gets two rotating files below the log directory:

    <log_dir>/
    ├── <component>.log   # OPERATION/DEBUG/WARNING lines with JSON details
    └── errors.log        # failures with kind, identifier and traceback

Lines look like:

    OPERATION - entry_written: {"identifier": "diary/2024-01-01", "bytes": 112}
    ERROR [Locked] LockedError: Entry is checked out: contact/alice

Library code never holds a bare ``Optional`` logger: ``safe_logger`` turns
None into a NullLogger with the same interface.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import json
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union

# --- Third party imports ---
import click

LOGGER_NAMESPACE = "commonplace"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _error_context(error: Exception, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Caller context plus the error's kind and identifier, when it has them."""
    merged: Dict[str, Any] = dict(context or {})
    kind = getattr(error, "kind", None)
    if kind is not None:
        merged.setdefault("kind", kind.value)
    identifier = getattr(error, "identifier", None)
    if identifier is not None:
        merged.setdefault("identifier", str(identifier))
    return merged


def format_cli_error(error: Exception) -> str:
    """
    Render an exception as a single human-readable line.

    Store errors are prefixed with their kind so users can tell recoverable
    conflicts (Locked) from corruption (Malformed, LinkInconsistent).
    """
    kind = getattr(error, "kind", None)
    prefix = f"Error [{kind.value}]" if kind is not None else "Error"
    return f"{prefix} {type(error).__name__}: {error}"


class CommonplaceLogger:
    """
    File logger for one store component.

    Attributes:
        log_dir: Directory holding the log files
        component_name: Component label ('store', 'cli', ...), also the log file stem
        console_level: Minimum level echoed to stderr
        main_logger: ``commonplace.<component>`` logger for operations
        error_logger: ``commonplace.<component>.errors`` logger for failures
    """

    def __init__(
        self,
        log_dir: Path,
        component_name: str = "store",
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        console_level: Union[int, str] = logging.WARNING,
    ) -> None:
        """
        Args:
            log_dir: Directory for log files (created if missing)
            component_name: Component label and log file stem
            max_bytes: Size at which a log file rotates
            backup_count: Rotated files kept per log
            console_level: Level name from the config (``"info"``) or number
        """
        self.log_dir = Path(log_dir)
        self.component_name = component_name
        if isinstance(console_level, str):
            console_level = logging.getLevelName(console_level.upper())
        self.console_level = console_level
        self.log_dir.mkdir(parents=True, exist_ok=True)

        name = f"{LOGGER_NAMESPACE}.{component_name}"
        self.main_logger = self._build(
            name, f"{component_name}.log", logging.DEBUG, max_bytes, backup_count
        )
        self.error_logger = self._build(
            f"{name}.errors", "errors.log", logging.ERROR, max_bytes, backup_count
        )

        console = logging.StreamHandler()
        console.setLevel(self.console_level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        self.main_logger.addHandler(console)

    def _build(
        self, name: str, filename: str, level: int, max_bytes: int, backup_count: int
    ) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # Our handlers only; records must not reach the root logger twice
        logger.handlers = []
        logger.propagate = False

        handler = RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        return logger

    def close(self) -> None:
        """Flush and detach all handlers (used by tests and short-lived front ends)."""
        for logger in (self.main_logger, self.error_logger):
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)

    def _emit(self, level: int, tag: str, event: str, details: Optional[Dict[str, Any]]) -> None:
        if details:
            self.main_logger.log(level, f"{tag} - {event}: {json.dumps(details, default=str)}")
        else:
            self.main_logger.log(level, f"{tag} - {event}")

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Record a completed store operation (``entry_written``, ``add_internal_link_completed``, ...)."""
        self._emit(logging.INFO, "OPERATION", operation, details)

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, "DEBUG", message, details)

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.WARNING, "WARNING", message, details)

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Record a failure in errors.log.

        Store errors contribute their kind and identifier to the context. The
        traceback is taken from the exception itself, so this also works
        outside the ``except`` block that caught it.
        """
        context = _error_context(error, context)
        kind = context.get("kind")
        prefix = f"ERROR [{kind}]" if kind else "ERROR"
        self.error_logger.error(f"{prefix} {type(error).__name__}: {error}")
        if context:
            self.error_logger.error(
                "Context: " + ", ".join(f"{key}={value}" for key, value in context.items())
            )
        if error.__traceback__ is not None:
            formatted = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            self.error_logger.error(f"Traceback:\n{formatted}")

    def log_cli_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """
        Log a front-end failure in full and return the line shown to the user.

        Examples:
            >>> logger.log_cli_error(LockedError("Entry is checked out: notes/a"))
            'Error [Locked] LockedError: Entry is checked out: notes/a'
        """
        self.log_error(error, context or {"source": "cli"})
        message = format_cli_error(error)
        if show_traceback and error.__traceback__ is not None:
            formatted = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            return f"{message}\n\n{formatted}"
        return message


def handle_cli_error(
    ctx: "click.Context",
    error: Exception,
    operation: str,
    additional_context: Optional[Dict[str, Any]] = None,
    exit_code: int = 1,
) -> None:
    """
    Standardized error handling for all CLI commands.

    Logs the full error through the logger in ``ctx.obj`` (if the store was
    opened), prints one clean line to stderr (plus the traceback with
    ``--verbose``) and exits.

    Args:
        ctx: Click context whose ``obj`` holds ``logger`` and ``verbose``
        error: Exception that occurred
        operation: Command that failed (e.g. 'link', 'create')
        additional_context: Identifiers, locators, ... involved
        exit_code: Process exit status

    Note:
        This function never returns - it always calls sys.exit()
    """
    obj = ctx.obj or {}
    context: Dict[str, Any] = {"operation": operation, **(additional_context or {})}

    message = safe_logger(obj.get("logger")).log_cli_error(
        error, context, show_traceback=obj.get("verbose", False)
    )
    click.echo(message, err=True)
    sys.exit(exit_code)


class NullLogger:
    """CommonplaceLogger stand-in that records nothing."""

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_debug(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        pass

    def log_cli_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        show_traceback: bool = False,
    ) -> str:
        """Nothing is logged; the message is still formatted."""
        return format_cli_error(error)


_null_logger = NullLogger()


def safe_logger(logger: Optional[CommonplaceLogger]) -> CommonplaceLogger:
    """
    Return ``logger``, or the shared NullLogger if it is None.

    Use:
        safe_logger(self.logger).log_operation("entry_deleted", {"identifier": "notes/a"})
    """
    return logger if logger is not None else _null_logger  # type: ignore[return-value]
