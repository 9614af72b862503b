"""
Commonplace Store Package
===============================

A filesystem-backed store for personal information management.

Every piece of personal data (a diary day, a contact, a bookmark) is an
entry: a Markdown file with a YAML header, addressed by a stable identifier
such as ``diary/2024-01-01``. Independent domain modules share one store
and one link graph, so a diary day can reference a contact and the contact
references the day back.

Main Components:
    - store: Identifier, Header, Entry and the Store with exclusive checkouts
    - links: Symmetric internal links and fingerprinted external links
    - extensions: Tag sets and composable header filters
    - core: Configuration, paths, logging and the exception hierarchy
    - cli: ``commonplace`` maintenance command group

Example Usage:
    >>> from commonplace import Store, LinkGraph
    >>> store = Store("~/.commonplace/store")
    >>> with store.checkout("diary/2024-01-01", create=True) as entry:
    ...     entry.content = "woke up at 7"
    >>> with store.checkout("contact/alice", create=True) as entry:
    ...     entry.header.set("contact.email", "alice@example.org")
    >>> LinkGraph(store).add_internal_link("diary/2024-01-01", "contact/alice")
    True
"""

__version__ = "1.0.0"

from commonplace.core.config import StoreConfig
from commonplace.core.exceptions import (
    AlreadyExistsError,
    ConfigError,
    ErrorKind,
    HashMismatchError,
    IOFailureError,
    LinkInconsistentError,
    LockedError,
    MalformedError,
    NotFoundError,
    StoreError,
)
from commonplace.links import ExternalLink, InternalLink, LinkGraph
from commonplace.store import Entry, Header, Identifier, Store, ValueType

__all__ = [
    "AlreadyExistsError",
    "ConfigError",
    "Entry",
    "ErrorKind",
    "ExternalLink",
    "HashMismatchError",
    "Header",
    "IOFailureError",
    "Identifier",
    "InternalLink",
    "LinkGraph",
    "LinkInconsistentError",
    "LockedError",
    "MalformedError",
    "NotFoundError",
    "Store",
    "StoreConfig",
    "StoreError",
    "ValueType",
]
