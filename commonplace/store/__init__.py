"""
store package
-------------------
Persistent entry store: identifiers, headers, entries and the Store itself.

- Identifier: canonical entry name and its file location
- Header: typed, namespaced metadata document
- Entry: identifier + header + content, handed out as an exclusive checkout
- Store: persistence, checkout discipline and transactions
"""
from commonplace.store.entry import Entry
from commonplace.store.header import CORE_NAMESPACE, SCHEMA_VERSION, Header, ValueType
from commonplace.store.identifier import Identifier
from commonplace.store.manager import IdentifierSequence, Store
from commonplace.store.registry import CheckoutRegistry

__all__ = [
    "CORE_NAMESPACE",
    "SCHEMA_VERSION",
    "CheckoutRegistry",
    "Entry",
    "Header",
    "Identifier",
    "IdentifierSequence",
    "Store",
    "ValueType",
]
