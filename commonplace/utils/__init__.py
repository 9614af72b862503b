"""
Utilities package for Commonplace.

- md: Header block framing (split/join of ``---`` delimited frontmatter)
- fs: Atomic writes and lazy entry file discovery
"""
from .fs import atomic_write_text, is_hidden_name, iter_entry_files, remove_empty_parents
from .md import join_frontmatter, split_frontmatter

__all__ = [
    "atomic_write_text",
    "is_hidden_name",
    "iter_entry_files",
    "join_frontmatter",
    "remove_empty_parents",
    "split_frontmatter",
]
