"""File pattern matching utilities for directory traversal.

Exclude patterns are fnmatch-style globs compiled to regexes once and cached,
so matching stays cheap when applied to every entry of a large tree.
"""

import os
import re
from fnmatch import translate
from typing import Pattern


def compile_pattern(pattern: str, cache: dict[str, Pattern[str]]) -> Pattern[str]:
    """Compile fnmatch pattern to regex with caching.

    Args:
        pattern: fnmatch-style pattern (e.g., "*.tmp", "node_modules")
        cache: Dictionary to cache compiled patterns

    Returns:
        Compiled regex pattern
    """
    if pattern not in cache:
        cache[pattern] = re.compile(translate(pattern))
    return cache[pattern]


def should_exclude_entry(
    name: str,
    path: str,
    patterns: list[str],
    cache: dict[str, Pattern[str]],
) -> bool:
    """Check whether a directory entry matches any exclude pattern.

    Patterns starting with ``**/`` match the entry name anywhere in the tree;
    other patterns are tried against both the entry name and its full path.
    """
    for pattern in patterns:
        if pattern.startswith("**/"):
            pattern = pattern[3:]
        if pattern.endswith("/**"):
            pattern = pattern[:-3]
        compiled = compile_pattern(pattern, cache)
        if compiled.match(name) or compiled.match(path):
            return True
    return False


def is_within(path: str, parent: str) -> bool:
    """True when ``path`` is ``parent`` or lies below it (component-wise)."""
    try:
        return os.path.commonpath([path, parent]) == parent
    except ValueError:
        # Different drives
        return False
