#!/usr/bin/env python3
"""
graph.py
--------------------
Symmetric link graph between entries, plus external link references.

Internal links are stored on both entries: if ``diary/2024-01-01`` lists
``contact/alice`` then ``contact/alice`` lists ``diary/2024-01-01``. Every
operation touching two entries runs inside ``Store.transaction``, so both
headers are written or neither is, and both checkouts are freed on every
exit path.

A one-sided link is corrupt state. It is reported as LinkInconsistentError
and never repaired silently. Dangling links (peer deleted) are listed by
``links_of`` until ``remove_dangling_links`` is called.

External links are ``{fingerprint, locator}`` records de-duplicated by
fingerprint.

Core Operations:
    - add_internal_link / remove_internal_link
    - add_external_link / remove_external_link
    - links_of / links_in: lazy link listing
    - remove_dangling_links: explicit cleanup
    - unlink_all: drop every internal link of an entry (both sides)
    - inconsistencies: find one-sided links across the store
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Iterable, Iterator, List, Optional, Tuple, Union

# --- Local imports ---
from commonplace.core.decorators import log_store_operation
from commonplace.core.exceptions import (
    HashMismatchError,
    LinkInconsistentError,
    LockedError,
    MalformedError,
    NotFoundError,
)
from commonplace.core.logging_manager import CommonplaceLogger
from commonplace.store.entry import Entry
from commonplace.store.header import CORE_NAMESPACE, Header
from commonplace.store.identifier import Identifier
from commonplace.store.manager import Store
from .fingerprint import normalize_locator
from .models import ExternalLink, InternalLink, Link

LINKS_PATH = f"{CORE_NAMESPACE}.links"
EXTERNAL_PATH = f"{CORE_NAMESPACE}.external"

IdLike = Union[str, Identifier]


# ----- Header accessors -----
def internal_links(header: Header) -> List[Identifier]:
    """
    Internal link targets recorded in ``header``.

    Raises:
        MalformedError: If the stored list or one of its items is invalid
    """
    raw = header.get_list(LINKS_PATH, [])
    peers: List[Identifier] = []
    for item in raw:
        if not isinstance(item, str):
            raise MalformedError(f"Internal link must be an identifier string: {item!r}")
        peers.append(Identifier.parse(item))
    return peers


def set_internal_links(header: Header, peers: Iterable[Identifier]) -> None:
    """Store ``peers`` sorted and unique; an empty set removes the field."""
    canonical = sorted({peer.canonical for peer in peers})
    if canonical:
        header.set(LINKS_PATH, canonical)
    else:
        header.delete(LINKS_PATH)


def external_links(header: Header) -> List[ExternalLink]:
    """
    External links recorded in ``header``, verified against their fingerprints.

    Raises:
        MalformedError: If the stored list or a record has the wrong shape
        HashMismatchError: If a record's fingerprint does not match its locator
    """
    return [ExternalLink.from_record(record) for record in header.get_list(EXTERNAL_PATH, [])]


def set_external_links(header: Header, links: Iterable[ExternalLink]) -> None:
    records = [link.to_record() for link in links]
    if records:
        header.set(EXTERNAL_PATH, records)
    else:
        header.delete(EXTERNAL_PATH)


class LinkGraph:
    """
    Link operations over a Store.

    Attributes:
        store: Store the linked entries live in
        logger: Optional CommonplaceLogger (defaults to the store's)

    Usage:
        graph = LinkGraph(store)
        graph.add_internal_link("diary/2024-01-01", "contact/alice")
        for link in graph.links_of("diary/2024-01-01"):
            print(link.target)
    """

    def __init__(self, store: Store, logger: Optional[CommonplaceLogger] = None) -> None:
        self.store = store
        self.logger = logger if logger is not None else store.logger

    # ---- Internal links ----
    @staticmethod
    def _pair(a: IdLike, b: IdLike) -> Tuple[Identifier, Identifier]:
        first, second = Identifier.parse(a), Identifier.parse(b)
        if first == second:
            raise LinkInconsistentError(f"Cannot link {first} to itself", identifier=first)
        return first, second

    @log_store_operation("add_internal_link")
    def add_internal_link(self, a: IdLike, b: IdLike) -> bool:
        """
        Link two entries to each other.

        Returns:
            True if the link was added, False if the pair was already linked

        Raises:
            LinkInconsistentError: On a self-link, or if only one side already
                holds the reference
            NotFoundError / LockedError: If either entry is missing or checked out
        """
        first, second = self._pair(a, b)
        with self.store.transaction(first, second) as (entry_a, entry_b):
            peers_a = internal_links(entry_a.header)
            peers_b = internal_links(entry_b.header)
            forward, backward = second in peers_a, first in peers_b

            if forward and backward:
                return False
            if forward or backward:
                holder, missing = (first, second) if forward else (second, first)
                raise LinkInconsistentError(
                    f"{holder} links {missing} but the reciprocal link is missing",
                    identifier=holder,
                )

            set_internal_links(entry_a.header, [*peers_a, second])
            set_internal_links(entry_b.header, [*peers_b, first])
        return True

    @log_store_operation("remove_internal_link")
    def remove_internal_link(self, a: IdLike, b: IdLike) -> None:
        """
        Remove the link between two entries, on both sides.

        Raises:
            NotFoundError: If the entries are not linked (or either is missing)
            LinkInconsistentError: If only one side holds the reference; nothing
                is changed
        """
        first, second = self._pair(a, b)
        with self.store.transaction(first, second) as (entry_a, entry_b):
            peers_a = internal_links(entry_a.header)
            peers_b = internal_links(entry_b.header)
            forward, backward = second in peers_a, first in peers_b

            if not forward and not backward:
                raise NotFoundError(f"No link between {first} and {second}", identifier=first)
            if forward != backward:
                holder, missing = (first, second) if forward else (second, first)
                raise LinkInconsistentError(
                    f"{holder} links {missing} but the reciprocal link is missing",
                    identifier=holder,
                )

            set_internal_links(entry_a.header, [peer for peer in peers_a if peer != second])
            set_internal_links(entry_b.header, [peer for peer in peers_b if peer != first])

    # ---- External links ----
    @log_store_operation("add_external_link")
    def add_external_link(self, target: IdLike, locator: str) -> bool:
        """
        Attach an external resource to an entry, de-duplicated by fingerprint.

        Returns:
            True if a record was appended, False if the locator was already linked

        Raises:
            MalformedError: If the locator is empty or not a string
            HashMismatchError: If a stored record has the same fingerprint but a
                different locator, or a stored fingerprint is corrupt
        """
        link = ExternalLink.for_locator(locator)
        with self.store.checkout(target) as entry:
            existing = external_links(entry.header)
            for record in existing:
                if record.fingerprint == link.fingerprint:
                    if normalize_locator(record.locator) != link.locator:
                        raise HashMismatchError(
                            f"Fingerprint collision on {entry.identifier}: "
                            f"'{record.locator}' and '{link.locator}'",
                            identifier=entry.identifier,
                        )
                    return False
            set_external_links(entry.header, [*existing, link])
        return True

    @log_store_operation("remove_external_link")
    def remove_external_link(self, target: IdLike, locator: str) -> None:
        """
        Remove an external link.

        Raises:
            NotFoundError: If the entry has no link to ``locator``
        """
        link = ExternalLink.for_locator(locator)
        with self.store.checkout(target) as entry:
            existing = external_links(entry.header)
            remaining = [record for record in existing if record.fingerprint != link.fingerprint]
            if len(remaining) == len(existing):
                raise NotFoundError(
                    f"{entry.identifier} has no external link to '{link.locator}'",
                    identifier=entry.identifier,
                )
            set_external_links(entry.header, remaining)

    # ---- Listing ----
    def _resolve(self, peers: List[Identifier], externals: List[ExternalLink]) -> Iterator[Link]:
        for peer in peers:
            present = self.store.exists(peer) or self.store.is_checked_out(peer)
            yield InternalLink(peer, dangling=not present)
        yield from externals

    def links_of(self, target: IdLike) -> Iterator[Link]:
        """
        Lazily list the links of a stored entry.

        The entry is checked out only long enough to read its header; peers
        are resolved (dangling or not) as the sequence is consumed. Dangling
        links are listed, never removed.

        Raises:
            NotFoundError / LockedError / MalformedError: When reading the entry
            HashMismatchError: If an external record is corrupt
        """
        with self.store.checkout(target) as entry:
            peers = internal_links(entry.header)
            externals = external_links(entry.header)
        return self._resolve(peers, externals)

    def links_in(self, entry: Entry) -> Iterator[Link]:
        """Same as ``links_of`` for an entry the caller already holds."""
        return self._resolve(internal_links(entry.header), external_links(entry.header))

    # ---- Maintenance ----
    @log_store_operation("remove_dangling_links")
    def remove_dangling_links(self, target: IdLike) -> List[Identifier]:
        """
        Remove internal links whose peer no longer exists.

        Returns:
            The identifiers that were removed
        """
        with self.store.checkout(target) as entry:
            peers = internal_links(entry.header)
            dangling = [
                peer
                for peer in peers
                if not self.store.exists(peer) and not self.store.is_checked_out(peer)
            ]
            if dangling:
                set_internal_links(entry.header, [peer for peer in peers if peer not in dangling])
        return dangling

    @log_store_operation("unlink_all")
    def unlink_all(self, target: IdLike) -> List[Identifier]:
        """
        Remove every internal link of an entry, on both sides, atomically.

        Dangling peers are dropped from the entry only. Typically called
        before deleting an entry.

        Returns:
            The identifiers the entry was linked to

        Raises:
            LinkInconsistentError: If an existing peer does not link back
            LockedError: If the entry's links changed while peers were acquired
        """
        identifier = Identifier.parse(target)
        with self.store.checkout(identifier) as entry:
            snapshot = internal_links(entry.header)
        live = sorted({peer for peer in snapshot if self.store.exists(peer)})

        with self.store.transaction(identifier, *live) as (entry, *peer_entries):
            if internal_links(entry.header) != snapshot:
                raise LockedError(
                    f"Links of {identifier} changed concurrently, retry", identifier=identifier
                )
            for peer_entry in peer_entries:
                back = internal_links(peer_entry.header)
                if identifier not in back:
                    raise LinkInconsistentError(
                        f"{identifier} links {peer_entry.identifier} but the reciprocal "
                        "link is missing",
                        identifier=identifier,
                    )
                set_internal_links(peer_entry.header, [peer for peer in back if peer != identifier])
            set_internal_links(entry.header, [])
        return snapshot

    def inconsistencies(self, collection: Optional[str] = None) -> Iterator[Tuple[Identifier, Identifier]]:
        """
        Lazily find one-sided internal links.

        Yields:
            ``(holder, peer)`` pairs where ``peer`` exists but does not link
            back to ``holder``. Dangling links are not reported.
        """
        for identifier in self.store.ids(collection):
            with self.store.checkout(identifier) as entry:
                peers = internal_links(entry.header)
            for peer in peers:
                if not self.store.exists(peer):
                    continue
                with self.store.checkout(peer) as other:
                    reciprocal = identifier in internal_links(other.header)
                if not reciprocal:
                    yield identifier, peer
