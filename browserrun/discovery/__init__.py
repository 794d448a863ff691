"""Discovery module - test module enumeration."""

from .module_finder import module_key, read_paths

__all__ = [
    "module_key",
    "read_paths",
]
