"""
Extensions built on the core header namespace.

- tags: validated tag sets at ``commonplace.tags``
- filters: composable header predicates and lazy entry selection
"""
from .filters import (
    FieldEq,
    FieldExists,
    FieldGrep,
    FieldIsType,
    Filter,
    HasTag,
    InCollection,
    select,
)
from .tags import TAGS_PATH, add_tag, get_tags, has_tag, remove_tag, set_tags

__all__ = [
    "TAGS_PATH",
    "FieldEq",
    "FieldExists",
    "FieldGrep",
    "FieldIsType",
    "Filter",
    "HasTag",
    "InCollection",
    "add_tag",
    "get_tags",
    "has_tag",
    "remove_tag",
    "select",
    "set_tags",
]
