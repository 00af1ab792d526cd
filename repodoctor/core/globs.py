"""
Glob matching shared by the snapshot walker, ignore filters and custom rules.

Patterns are fnmatch globs over relative POSIX paths, with a few
gitignore-like conventions:
  - a trailing "/" matches a directory and everything beneath it
  - a pattern without "/" matches any single path component
  - a leading "**/" matches at any depth
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable


def normalize_pattern(pattern: str) -> str:
    p = pattern.strip().replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p.lstrip("/")


def _candidates(parts: list[str], include_self: bool) -> list[list[str]]:
    upto = len(parts) if include_self else len(parts) - 1
    return [parts[:i] for i in range(1, upto + 1)]


def glob_match(path: str, pattern: str, is_dir: bool = False) -> bool:
    """Return True if the relative path is selected by the pattern."""
    p = normalize_pattern(pattern)
    if not p:
        return False
    parts = [part for part in path.replace("\\", "/").strip("/").split("/") if part]
    if not parts:
        return False

    dir_only = p.endswith("/")
    p = p.rstrip("/")
    include_self = is_dir or not dir_only
    candidates = _candidates(parts, include_self)

    if p.startswith("**/"):
        tail = p[3:]
        for candidate in candidates:
            for start in range(len(candidate)):
                if fnmatchcase("/".join(candidate[start:]), tail):
                    return True
        return False

    if "/" not in p:
        return any(fnmatchcase(candidate[-1], p) for candidate in candidates)

    return any(fnmatchcase("/".join(candidate), p) for candidate in candidates)


def matches_any(path: str, patterns: Iterable[str], is_dir: bool = False) -> bool:
    return any(glob_match(path, pattern, is_dir=is_dir) for pattern in patterns)
