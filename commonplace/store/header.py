#!/usr/bin/env python3
"""
header.py
-------------------
Typed, namespaced metadata document attached to every entry.

A header is a tree of tagged values: null, bool, integer, float, string,
sequence or map (string keys only). Any other Python type is rejected.
Top-level keys are namespaces: ``commonplace`` is reserved for the store
itself (schema version, links, tags) and every domain module keeps its
fields under its own name:

    commonplace:
      version: 1.0.0
      links: [contact/alice]
    diary:
      mood: rested

Unknown namespaces are preserved verbatim, key order included.

Fields are addressed with dotted paths; ``[n]`` indexes into a sequence:

    header.read("commonplace.version")     # '1.0.0'
    header.read("commonplace.links.[0]")   # 'contact/alice'
    header.set("diary.weather", "rain")

Typed accessors never coerce: ``get_int`` on a float, or ``get_float`` on an
integer, raises MalformedError.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import copy
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

# --- Third party imports ---
import yaml

# --- Local imports ---
from commonplace.core.exceptions import MalformedError
from commonplace.core.validators import DataValidator

SCHEMA_VERSION = "1.0.0"
CORE_NAMESPACE = "commonplace"
VERSION_PATH = f"{CORE_NAMESPACE}.version"

_INDEX_PATTERN = re.compile(r"^\[(\d+)\]$")
_MISSING = object()

PathSegment = Union[str, int]


class ValueType(Enum):
    """Tags of the header value tree."""

    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    SEQUENCE = "sequence"
    MAP = "map"


def value_type(value: Any) -> ValueType:
    """
    Classify a single node of the value tree.

    Raises:
        MalformedError: If the value is not a supported header type
    """
    # bool before int: bool is a subclass of int
    if value is None:
        return ValueType.NULL
    if isinstance(value, bool):
        return ValueType.BOOL
    if isinstance(value, int):
        return ValueType.INTEGER
    if isinstance(value, float):
        return ValueType.FLOAT
    if isinstance(value, str):
        return ValueType.STRING
    if isinstance(value, list):
        return ValueType.SEQUENCE
    if isinstance(value, dict):
        return ValueType.MAP
    raise MalformedError(f"Unsupported header value type: {type(value).__name__}")


def validate_value(value: Any, path: str = "") -> None:
    """
    Recursively check that ``value`` is a valid header tree.

    Raises:
        MalformedError: On unsupported types or non-string map keys
    """
    kind = value_type(value)
    if kind is ValueType.SEQUENCE:
        for index, item in enumerate(value):
            validate_value(item, f"{path}.[{index}]" if path else f"[{index}]")
    elif kind is ValueType.MAP:
        for key, item in value.items():
            if not isinstance(key, str):
                raise MalformedError(
                    f"Header map keys must be strings, found {key!r} at '{path or '<root>'}'"
                )
            validate_value(item, f"{path}.{key}" if path else key)


def parse_path(path: str) -> List[PathSegment]:
    """
    Split a dotted field path into map keys and sequence indices.

    Examples:
        >>> parse_path("commonplace.links.[0]")
        ['commonplace', 'links', 0]
    """
    if not isinstance(path, str) or not path:
        raise MalformedError(f"Invalid header path: {path!r}")
    segments: List[PathSegment] = []
    for part in path.split("."):
        if not part:
            raise MalformedError(f"Empty segment in header path '{path}'")
        index = _INDEX_PATTERN.match(part)
        segments.append(int(index.group(1)) if index else part)
    return segments


def check_core(data: Dict[str, Any]) -> None:
    """
    Check the reserved namespace of a header document.

    Raises:
        MalformedError: If ``commonplace`` is not a map, or its version is
            missing or incompatible
    """
    core = data.get(CORE_NAMESPACE)
    if not isinstance(core, dict) or "version" not in core:
        raise MalformedError(f"Header missing required field '{VERSION_PATH}'")
    DataValidator.validate_compatible_version(core["version"], SCHEMA_VERSION)


class _HeaderLoader(yaml.SafeLoader):
    """Safe loader that keeps date-like scalars as plain strings."""


_HeaderLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag != "tag:yaml.org,2002:timestamp"
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class Header:
    """
    Metadata document of one entry.

    Attributes:
        data: Underlying ordered mapping (validated value tree)

    Examples:
        >>> header = Header()
        >>> header.version
        '1.0.0'
        >>> header.set("diary.mood", "rested")
        >>> header.get_str("diary.mood")
        'rested'
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Build a header from a mapping (deep-copied), adding the schema version.

        Raises:
            MalformedError: If the mapping is not a valid header tree
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedError("Header document must be a mapping")
        validate_value(data)
        self.data: Dict[str, Any] = copy.deepcopy(data)
        if self.read(VERSION_PATH) is None:
            self.set(VERSION_PATH, SCHEMA_VERSION)

    # ---- Construction / serialization ----
    @classmethod
    def from_yaml(cls, text: str) -> Header:
        """
        Parse a YAML header block and validate its schema version.

        Raises:
            MalformedError: On invalid YAML, a non-mapping document, unsupported
                values, or a missing/incompatible schema version
        """
        try:
            data = yaml.load(text, Loader=_HeaderLoader)
        except yaml.YAMLError as e:
            raise MalformedError(f"Invalid YAML header: {e}") from e

        if not isinstance(data, dict):
            raise MalformedError("YAML header must be a mapping")

        check_core(data)
        return cls(data)

    def check(self) -> None:
        """
        Check that the document would load back through ``from_yaml``.

        Catches edits made through ``namespace()`` or ``data`` directly,
        which bypass the checks in ``set``.

        Raises:
            MalformedError: On unsupported values or a broken reserved namespace
        """
        validate_value(self.data)
        check_core(self.data)

    def to_yaml(self) -> str:
        """Serialize to a YAML block (key order preserved)."""
        return yaml.safe_dump(
            self.data,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy of the document."""
        return copy.deepcopy(self.data)

    def copy(self) -> Header:
        return Header(self.data)

    # ---- Path navigation ----
    def _walk(self, segments: List[PathSegment]) -> Any:
        node: Any = self.data
        for segment in segments:
            if isinstance(segment, int):
                if not isinstance(node, list) or segment >= len(node):
                    return _MISSING
                node = node[segment]
            else:
                if not isinstance(node, dict) or segment not in node:
                    return _MISSING
                node = node[segment]
        return node

    def _parent(self, path: str, create: bool) -> Tuple[Any, PathSegment]:
        """Return the container holding the last path segment."""
        segments = parse_path(path)
        node: Any = self.data
        for position, segment in enumerate(segments[:-1]):
            following = segments[position + 1]
            if isinstance(segment, int):
                if not isinstance(node, list) or segment >= len(node):
                    raise MalformedError(f"Index {segment} out of range in '{path}'")
                node = node[segment]
            else:
                if not isinstance(node, dict):
                    raise MalformedError(f"'{segment}' in '{path}' is not inside a map")
                if segment not in node:
                    if not create:
                        return None, segments[-1]
                    if isinstance(following, int):
                        raise MalformedError(
                            f"Cannot create sequence element in '{path}'"
                        )
                    node[segment] = {}
                node = node[segment]
        return node, segments[-1]

    def read(self, path: str, default: Any = None) -> Any:
        """
        Read the value at ``path`` (no copy), or ``default`` if absent.

        Examples:
            >>> Header().read("diary.mood") is None
            True
        """
        found = self._walk(parse_path(path))
        return default if found is _MISSING else found

    def __contains__(self, path: str) -> bool:
        return self._walk(parse_path(path)) is not _MISSING

    def set(self, path: str, value: Any) -> Any:
        """
        Set ``path`` to ``value``, creating intermediate maps.

        Returns:
            The previous value, or None

        Raises:
            MalformedError: If ``value`` is not a valid header value, an
                intermediate node is not a container, or the reserved
                namespace would lose its schema version
        """
        validate_value(value, path)
        if path == CORE_NAMESPACE:
            check_core({CORE_NAMESPACE: value})
        elif path == VERSION_PATH:
            DataValidator.validate_compatible_version(value, SCHEMA_VERSION)
        container, last = self._parent(path, create=True)
        value = copy.deepcopy(value)
        if isinstance(last, int):
            if not isinstance(container, list) or last >= len(container):
                raise MalformedError(f"Index {last} out of range in '{path}'")
            previous = container[last]
            container[last] = value
            return previous
        if not isinstance(container, dict):
            raise MalformedError(f"Cannot set '{path}': parent is not a map")
        previous = container.get(last)
        container[last] = value
        return previous

    def delete(self, path: str) -> Any:
        """
        Remove the value at ``path``.

        Returns:
            The removed value, or None if nothing was there
        """
        if path == VERSION_PATH or path == CORE_NAMESPACE:
            raise MalformedError(f"'{path}' is required and cannot be deleted")
        container, last = self._parent(path, create=False)
        if container is None:
            return None
        if isinstance(last, int):
            if isinstance(container, list) and last < len(container):
                return container.pop(last)
            return None
        if isinstance(container, dict):
            return container.pop(last, None)
        return None

    # ---- Typed accessors ----
    def _typed(self, path: str, expected: Tuple[ValueType, ...], default: Any) -> Any:
        found = self._walk(parse_path(path))
        if found is _MISSING:
            return default
        actual = value_type(found)
        if actual not in expected:
            wanted = " or ".join(kind.value for kind in expected)
            raise MalformedError(f"Expected {wanted} at '{path}', found {actual.value}")
        return found

    def get_str(self, path: str, default: Optional[str] = None) -> Optional[str]:
        return self._typed(path, (ValueType.STRING,), default)

    def get_int(self, path: str, default: Optional[int] = None) -> Optional[int]:
        return self._typed(path, (ValueType.INTEGER,), default)

    def get_float(self, path: str, default: Optional[float] = None) -> Optional[float]:
        return self._typed(path, (ValueType.FLOAT,), default)

    def get_bool(self, path: str, default: Optional[bool] = None) -> Optional[bool]:
        return self._typed(path, (ValueType.BOOL,), default)

    def get_list(self, path: str, default: Optional[list] = None) -> Optional[list]:
        return self._typed(path, (ValueType.SEQUENCE,), default)

    def get_map(self, path: str, default: Optional[dict] = None) -> Optional[dict]:
        return self._typed(path, (ValueType.MAP,), default)

    def type_of(self, path: str) -> Optional[ValueType]:
        """Tag of the value at ``path``, or None if absent."""
        found = self._walk(parse_path(path))
        return None if found is _MISSING else value_type(found)

    # ---- Namespaces ----
    @property
    def version(self) -> str:
        """Schema version recorded in the header."""
        return self.get_str(VERSION_PATH) or SCHEMA_VERSION

    def namespaces(self) -> List[str]:
        """Top-level namespace names in document order."""
        return list(self.data.keys())

    def namespace(self, name: str) -> Dict[str, Any]:
        """
        Mutable map of one namespace, created empty if missing.

        Raises:
            MalformedError: If the namespace exists but is not a map
        """
        section = self.data.setdefault(name, {})
        if not isinstance(section, dict):
            raise MalformedError(f"Namespace '{name}' is not a map")
        return section

    # ---- Comparison ----
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Header):
            return NotImplemented
        return self.data == other.data

    def __repr__(self) -> str:
        return f"Header({self.data!r})"
