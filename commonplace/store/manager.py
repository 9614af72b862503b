#!/usr/bin/env python3
"""
manager.py
--------------------
Filesystem-backed entry store.

Provides the Store class, which exclusively owns durable state below one
root directory. Handles:
    - Identifier -> file mapping (``root/<collection>/<name>.md``)
    - Exclusive in-process checkouts (one live handle per identifier)
    - Atomic write-back (temporary file + fsync + rename)
    - Multi-entry transactions that commit every entry or none
    - Lazy, restartable enumeration of stored identifiers

Core Operations:
    - create: New empty entry (AlreadyExists if the location is taken)
    - retrieve: Load an existing entry (NotFound if absent)
    - get: Like retrieve, returns None if absent
    - update: Write a checked-out entry now, keep the checkout
    - release: Write back if modified, free the checkout
    - discard: Free the checkout without writing
    - delete: Remove an entry (Locked if another handle holds it)
    - ids: Iterate identifiers without loading content
    - checkout / transaction: Scoped acquisition with guaranteed release

Notes
==============
- Checkout conflicts fail immediately with LockedError; nothing waits
- The checkout registry is per Store instance; open one Store per root
- Cross-process locking is not implemented: two processes writing the
  same identifier race, and the last rename wins
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import stat
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

# --- Local imports ---
from commonplace.core.config import StoreConfig
from commonplace.core.exceptions import (
    AlreadyExistsError,
    IOFailureError,
    LockedError,
    MalformedError,
    NotFoundError,
    StoreError,
)
from commonplace.core.logging_manager import CommonplaceLogger, safe_logger
from commonplace.core.paths import CONFIG_PATH, STORE_DIR
from commonplace.utils.fs import atomic_write_text, iter_entry_files, remove_empty_parents
from .entry import Entry
from .identifier import Identifier, parse_prefix
from .registry import CheckoutRegistry

Target = Union[str, Identifier, Entry]


class IdentifierSequence:
    """
    Lazy, restartable sequence of stored identifiers.

    Every iteration walks the filesystem afresh, so entries created or
    deleted between iterations are reflected. No entry content is read.
    """

    def __init__(self, store: Store, collection: Optional[str] = None) -> None:
        self._store = store
        self._collection = collection
        if collection is not None:
            parse_prefix(collection)

    def __iter__(self) -> Iterator[Identifier]:
        return self._store._iter_ids(self._collection)

    def __repr__(self) -> str:
        return f"IdentifierSequence(root={self._store.root!s}, collection={self._collection!r})"


class Store:
    """
    Persistent entry store rooted at one directory.

    Attributes:
        root: Store root directory
        config: StoreConfig in effect
        logger: Optional CommonplaceLogger

    Usage:
        store = Store(Path("~/.commonplace/store"))

        with store.checkout("diary/2024-01-01", create=True) as entry:
            entry.content = "woke up at 7"
        # written and released here; discarded instead on exception

        with store.transaction("diary/2024-01-01", "contact/alice") as (a, b):
            ...
        # both written or neither
    """

    # ---- Initialization ----
    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[StoreConfig] = None,
        logger: Optional[CommonplaceLogger] = None,
    ) -> None:
        """
        Open the store at ``root``.

        Args:
            root: Store root directory
            config: Configuration (defaults if None)
            logger: Optional logger for store operations

        Raises:
            NotFoundError: If the root is missing and implicit-create is off
            IOFailureError: If the root is not a directory or cannot be created
        """
        self.root = Path(root).expanduser()
        self.config = config or StoreConfig()
        self.logger = logger
        self._registry = CheckoutRegistry()

        if self.root.is_dir():
            return
        if self.root.exists():
            raise IOFailureError(f"Store root is not a directory: {self.root}")
        if not self.config.implicit_create:
            raise NotFoundError(
                f"Store root does not exist: {self.root} "
                "(set store.implicit-create to create it)"
            )
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Cannot create store root {self.root}: {e}") from e
        safe_logger(self.logger).log_operation("store_created", {"root": str(self.root)})

    @classmethod
    def open(
        cls,
        root: Optional[Union[str, Path]] = None,
        config_path: Optional[Path] = None,
        log_dir: Optional[Path] = None,
    ) -> Store:
        """
        Open a store from the configuration file and default locations.

        Args:
            root: Store root (default: ``paths.STORE_DIR``)
            config_path: YAML configuration (default: ``paths.CONFIG_PATH``)
            log_dir: Log directory overriding ``logging.dir`` from the config

        Returns:
            Store instance with a logger if a log directory is configured
        """
        config = StoreConfig.from_file(config_path or CONFIG_PATH)
        log_dir = log_dir or config.log_dir
        logger = (
            CommonplaceLogger(log_dir, component_name="store", console_level=config.log_level)
            if log_dir
            else None
        )
        return cls(root or STORE_DIR, config=config, logger=logger)

    # ---- Internal helpers ----
    @staticmethod
    def _resolve(target: Target) -> Identifier:
        if isinstance(target, Entry):
            return target.identifier
        return Identifier.parse(target)

    def path_of(self, target: Target) -> Path:
        """Storage location of an identifier."""
        return self._resolve(target).to_path(self.root)

    def _stat(self, identifier: Identifier, files_only: bool = True) -> bool:
        """
        Check whether something is stored at the identifier's location.

        Raises:
            IOFailureError: If the location cannot be inspected (e.g. the
                path is too long for the filesystem)
        """
        try:
            mode = identifier.to_path(self.root).stat().st_mode
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            raise IOFailureError(
                f"Cannot inspect {identifier}: {e}", identifier=identifier
            ) from e
        return stat.S_ISREG(mode) or not files_only

    def _read_entry(self, identifier: Identifier) -> Entry:
        path = identifier.to_path(self.root)
        try:
            # Undecoded bytes: line endings come back exactly as written
            text = path.read_bytes().decode("utf-8")
        except FileNotFoundError as e:
            raise NotFoundError(f"No entry at {identifier}", identifier=identifier) from e
        except UnicodeDecodeError as e:
            raise MalformedError(
                f"Entry {identifier} is not valid UTF-8: {e}", identifier=identifier
            ) from e
        except OSError as e:
            raise IOFailureError(f"Cannot read {identifier}: {e}", identifier=identifier) from e
        return Entry.from_text(identifier, text)

    def _checkout(self, identifier: Identifier, create: bool) -> Entry:
        token = self._registry.acquire(identifier)
        try:
            if create:
                if self._stat(identifier, files_only=False):
                    raise AlreadyExistsError(
                        f"Entry already exists: {identifier}", identifier=identifier
                    )
                entry = Entry(identifier)
            else:
                entry = self._read_entry(identifier)
        except BaseException:
            self._registry.release(identifier, token)
            raise

        entry._token = token
        safe_logger(self.logger).log_debug(
            "entry_checked_out", {"identifier": str(identifier), "new": create}
        )
        return entry

    def _ensure_held(self, entry: Entry) -> None:
        if not isinstance(entry, Entry):
            raise MalformedError(f"Expected an Entry, got {type(entry).__name__}")
        if not self._registry.holds(entry.identifier, entry._token):
            raise LockedError(
                f"Entry handle is not checked out from this store: {entry.identifier}",
                identifier=entry.identifier,
            )

    def _free(self, entry: Entry) -> None:
        if entry._token is None:
            return
        self._registry.release(entry.identifier, entry._token)
        entry._token = None
        safe_logger(self.logger).log_debug(
            "entry_released", {"identifier": str(entry.identifier)}
        )

    @staticmethod
    def _check_header(entry: Entry) -> None:
        try:
            entry.header.check()
        except MalformedError as e:
            raise MalformedError(
                f"Refusing to write {entry.identifier}: {e.message}", identifier=entry.identifier
            ) from e

    def _write(self, entry: Entry) -> str:
        """
        Atomically write ``entry`` and return the text written.

        Raises:
            MalformedError: If the header would not load back (schema version
                removed or replaced, unsupported values); nothing is written
            IOFailureError: If the filesystem write fails
        """
        self._check_header(entry)
        text = entry.to_text()
        try:
            atomic_write_text(entry.identifier.to_path(self.root), text)
        except OSError as e:
            error = IOFailureError(
                f"Cannot write {entry.identifier}: {e}", identifier=entry.identifier
            )
            safe_logger(self.logger).log_error(
                e, {"operation": "write_entry", "identifier": str(entry.identifier)}
            )
            raise error from e
        safe_logger(self.logger).log_operation(
            "entry_written",
            {"identifier": str(entry.identifier), "new": entry.is_new, "bytes": len(text)},
        )
        return text

    def _restore(self, entry: Entry) -> None:
        """Put the on-disk state of ``entry`` back to what it was at checkout."""
        path = entry.identifier.to_path(self.root)
        if entry.loaded_text is None:
            path.unlink(missing_ok=True)
            remove_empty_parents(path, self.root)
        else:
            atomic_write_text(path, entry.loaded_text)

    def _commit(self, entries: List[Entry]) -> None:
        """Write every dirty entry, or restore the ones written if any write fails."""
        for entry in entries:
            if entry.is_checked_out:
                self._check_header(entry)
        dirty = [entry for entry in entries if entry.is_checked_out and entry.is_dirty]
        written: List[Tuple[Entry, str]] = []
        try:
            for entry in dirty:
                written.append((entry, self._write(entry)))
        except StoreError:
            failed: List[str] = []
            for entry, _ in reversed(written):
                try:
                    self._restore(entry)
                except OSError as restore_error:
                    failed.append(str(entry.identifier))
                    safe_logger(self.logger).log_error(
                        restore_error,
                        {"operation": "rollback", "identifier": str(entry.identifier)},
                    )
            safe_logger(self.logger).log_warning(
                "transaction_rolled_back",
                {"restored": [str(e.identifier) for e, _ in written], "failed": failed},
            )
            if failed:
                raise IOFailureError(
                    f"Rollback failed, entries need manual inspection: {', '.join(failed)}"
                )
            raise

        for entry, text in written:
            entry.mark_clean(text)

    # ---- Public API ----
    def create(self, target: Union[str, Identifier]) -> Entry:
        """
        Create a new, empty entry and check it out.

        The entry is written when it is released (or updated).

        Raises:
            MalformedError: If the identifier is invalid
            AlreadyExistsError: If an entry already exists at the location
            LockedError: If the identifier is checked out
        """
        identifier = self._resolve(target)
        entry = self._checkout(identifier, create=True)
        safe_logger(self.logger).log_operation("entry_created", {"identifier": str(identifier)})
        return entry

    def retrieve(self, target: Union[str, Identifier]) -> Entry:
        """
        Load an existing entry and check it out.

        Raises:
            NotFoundError: If no entry exists at the location
            LockedError: If the identifier is already checked out
            MalformedError: If the stored entry cannot be parsed
            IOFailureError: If the file cannot be read
        """
        return self._checkout(self._resolve(target), create=False)

    def get(self, target: Union[str, Identifier]) -> Optional[Entry]:
        """Like ``retrieve`` but returns None when the entry does not exist."""
        identifier = self._resolve(target)
        if not self._stat(identifier):
            return None
        try:
            return self._checkout(identifier, create=False)
        except NotFoundError:
            # Deleted between the existence check and the read
            return None

    def update(self, entry: Entry) -> bool:
        """
        Write a checked-out entry now if it changed; the checkout is kept.

        Returns:
            True if the entry was written

        Raises:
            LockedError: If ``entry`` is not a live handle from this store
            IOFailureError: If the write fails (the previous file is intact)
        """
        self._ensure_held(entry)
        self._check_header(entry)
        if not entry.is_dirty:
            return False
        entry.mark_clean(self._write(entry))
        return True

    def release(self, entry: Entry) -> bool:
        """
        Write back ``entry`` if modified and free its checkout.

        The checkout is freed even if the write fails, so a failed caller never
        blocks later ones.

        Returns:
            True if the entry was written
        """
        self._ensure_held(entry)
        try:
            return self.update(entry)
        finally:
            self._free(entry)

    def discard(self, entry: Entry) -> None:
        """Free the checkout of ``entry`` without writing anything."""
        self._ensure_held(entry)
        self._free(entry)

    @contextmanager
    def checkout(self, target: Union[str, Identifier], create: bool = False) -> Iterator[Entry]:
        """
        Scoped checkout of one entry.

        On normal exit the entry is released (written if modified); if the
        block raises, the entry is discarded unwritten and the error propagates.

        Args:
            target: Identifier to check out
            create: Create a new entry instead of loading an existing one
        """
        identifier = self._resolve(target)
        entry = self._checkout(identifier, create=create)
        if create:
            safe_logger(self.logger).log_operation("entry_created", {"identifier": str(identifier)})
        try:
            yield entry
        except BaseException:
            self._free(entry)
            raise
        else:
            if entry.is_checked_out:
                self.release(entry)

    @contextmanager
    def transaction(self, *targets: Union[str, Identifier]) -> Iterator[Tuple[Entry, ...]]:
        """
        Check out several existing entries and commit them together.

        All checkouts are taken before the block runs; if any fails, those
        already taken are freed and the error propagates. On normal exit every
        modified entry is written; if a write fails, the entries already
        written are restored to their previous file contents. Every checkout
        is freed on every exit path.

        Yields:
            Tuple of entries in the order of ``targets``

        Raises:
            NotFoundError / LockedError / MalformedError: While acquiring
            IOFailureError: If committing fails (after rollback)
        """
        identifiers = [self._resolve(target) for target in targets]
        entries: List[Entry] = []
        try:
            for identifier in identifiers:
                entries.append(self._checkout(identifier, create=False))
        except BaseException:
            for entry in entries:
                self._free(entry)
            raise

        names = [str(identifier) for identifier in identifiers]
        try:
            yield tuple(entries)
        except BaseException as e:
            safe_logger(self.logger).log_debug(
                "transaction_aborted", {"identifiers": names, "error": type(e).__name__}
            )
            raise
        else:
            self._commit(entries)
            safe_logger(self.logger).log_operation("transaction_committed", {"identifiers": names})
        finally:
            for entry in entries:
                self._free(entry)

    def delete(self, target: Target) -> None:
        """
        Remove an entry from storage.

        Passing an identifier fails with LockedError if any handle holds it.
        Passing the caller's own Entry handle deletes it and frees the checkout.

        Raises:
            NotFoundError: If nothing is stored at the location
            LockedError: If the identifier is checked out by another handle
            IOFailureError: If the file cannot be removed
        """
        if isinstance(target, Entry):
            self._ensure_held(target)
            identifier = target.identifier
            try:
                if not (target.is_new and not self._stat(identifier, files_only=False)):
                    self._unlink(identifier)
            finally:
                self._free(target)
            return

        identifier = self._resolve(target)
        token = self._registry.acquire(identifier)
        try:
            self._unlink(identifier)
        finally:
            self._registry.release(identifier, token)

    def _unlink(self, identifier: Identifier) -> None:
        path = identifier.to_path(self.root)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"No entry at {identifier}", identifier=identifier) from e
        except OSError as e:
            raise IOFailureError(f"Cannot delete {identifier}: {e}", identifier=identifier) from e
        remove_empty_parents(path, self.root)
        safe_logger(self.logger).log_operation("entry_deleted", {"identifier": str(identifier)})

    def exists(self, target: Union[str, Identifier]) -> bool:
        """Check whether an entry is stored at the identifier's location."""
        return self._stat(self._resolve(target))

    def is_checked_out(self, target: Union[str, Identifier]) -> bool:
        return self._registry.is_checked_out(self._resolve(target))

    def checked_out(self) -> List[Identifier]:
        """Identifiers currently checked out in this process."""
        return self._registry.checked_out()

    def ids(self, collection: Optional[str] = None) -> IdentifierSequence:
        """
        Lazy, restartable sequence of stored identifiers.

        Args:
            collection: Optional prefix (e.g. ``diary``) limiting the walk

        Raises:
            MalformedError: If ``collection`` is not a valid prefix
        """
        return IdentifierSequence(self, collection)

    def _iter_ids(self, collection: Optional[str]) -> Iterator[Identifier]:
        base = self.root.joinpath(*parse_prefix(collection)) if collection else self.root
        try:
            for path in iter_entry_files(base):
                try:
                    yield Identifier.from_path(self.root, path)
                except MalformedError as e:
                    safe_logger(self.logger).log_warning(
                        "skipping_unaddressable_file", {"path": str(path), "reason": e.message}
                    )
        except OSError as e:
            raise IOFailureError(f"Cannot list entries under {base}: {e}") from e

    def __repr__(self) -> str:
        return f"Store(root={self.root!s})"
