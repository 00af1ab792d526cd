"""
Project Snapshot — Immutable in-memory index of the scanned file tree.

Built once per scan by a single sorted walk. Analyzers query it instead of
touching the filesystem layout themselves; text content is read on demand
through read_text(), which enforces the size limit.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import stat
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import yaml

from repodoctor.config import settings
from repodoctor.core.globs import matches_any
from repodoctor.errors import UnreadableRootError

logger = logging.getLogger("repodoctor.snapshot")

# Recorded as present but never descended into
DEFAULT_EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        "node_modules",
        "vendor",
        "target",
        "__pycache__",
        ".venv",
        "venv",
        ".tox",
        ".dart_tool",
        ".next",
        ".idea",
    }
)

# Structured config documents parsed once for all analyzers
DOCUMENT_PARSERS: dict[str, str] = {
    "package.json": "json",
    "composer.json": "json",
    "tsconfig.json": "json",
    "pubspec.yaml": "yaml",
    "Cargo.toml": "toml",
    "pyproject.toml": "toml",
}


@dataclass(frozen=True)
class FileMeta:
    size: int
    mode: int

    @property
    def is_executable(self) -> bool:
        return bool(self.mode & stat.S_IXUSR)


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of a repository at scan start."""

    root: Path
    files: tuple[str, ...]
    dirs: frozenset[str]
    meta: Mapping[str, FileMeta]
    documents: Mapping[str, Any]
    warnings: tuple[str, ...] = ()
    max_file_size: int = field(default=1_000_000)

    # ── Presence ──

    def is_file(self, rel: str) -> bool:
        return rel in self.meta

    def is_dir(self, rel: str) -> bool:
        return rel.strip("/") in self.dirs

    def exists(self, rel: str) -> bool:
        return self.is_file(rel) or self.is_dir(rel)

    def any_exists(self, *rels: str) -> bool:
        return any(self.exists(r) for r in rels)

    # ── Content ──

    def document(self, name: str) -> Any | None:
        return self.documents.get(name)

    def read_text(self, rel: str) -> str | None:
        """Read an indexed file as text; None if missing, too large or unreadable."""
        meta = self.meta.get(rel)
        if meta is None or meta.size > self.max_file_size:
            return None
        try:
            return (self.root / rel).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {rel}: {e}")
            return None

    def read_exact(self, rel: str) -> str | None:
        """
        Read an indexed file for rewriting: strict UTF-8, line endings untouched.

        None if missing, too large, unreadable or not valid UTF-8.
        """
        meta = self.meta.get(rel)
        if meta is None or meta.size > self.max_file_size:
            return None
        try:
            return (self.root / rel).read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Cannot read {rel} losslessly: {e}")
            return None

    def content_hash(self, rel: str) -> str | None:
        try:
            return hashlib.sha256((self.root / rel).read_bytes()).hexdigest()
        except OSError:
            return None

    # ── Queries ──

    def iter_files(
        self,
        under: str | Iterable[str] | None = None,
        extensions: Iterable[str] | None = None,
        names: Iterable[str] | None = None,
    ) -> Iterator[str]:
        """Yield indexed files, optionally restricted by directory, extension or name."""
        if isinstance(under, str):
            prefixes = (under.strip("/") + "/",)
        elif under is not None:
            prefixes = tuple(u.strip("/") + "/" for u in under)
        else:
            prefixes = None
        exts = {e.lower().lstrip(".") for e in extensions} if extensions else None
        wanted = set(names) if names else None

        for rel in self.files:
            if prefixes is not None and not rel.startswith(prefixes):
                continue
            base = rel.rsplit("/", 1)[-1]
            if wanted is not None and base not in wanted:
                continue
            if exts is not None:
                if "." not in base or base.rsplit(".", 1)[-1].lower() not in exts:
                    continue
            yield rel

    def children(self, rel_dir: str) -> list[str]:
        """Direct child directories of rel_dir."""
        prefix = rel_dir.strip("/") + "/" if rel_dir else ""
        return sorted(
            d for d in self.dirs if d.startswith(prefix) and "/" not in d[len(prefix):]
        )

    def max_depth(self) -> int:
        """Deepest directory nesting, ignoring hidden and excluded directories."""
        deepest = 0
        for d in self.dirs:
            parts = d.split("/")
            if any(p.startswith(".") or p in DEFAULT_EXCLUDED_DIRS for p in parts):
                continue
            deepest = max(deepest, len(parts))
        return deepest


def build_snapshot(
    root: str | os.PathLike,
    ignore_globs: Iterable[str] = (),
    excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    max_files: int | None = None,
    max_file_size: int | None = None,
) -> Snapshot:
    """
    Walk the tree once and build an immutable Snapshot.

    Raises:
        UnreadableRootError: root missing or not a directory.
    """
    root_path = Path(root).expanduser()
    if not root_path.exists():
        raise UnreadableRootError(str(root_path), "path does not exist")
    if not root_path.is_dir():
        raise UnreadableRootError(str(root_path), "path is not a directory")
    root_path = root_path.resolve()

    ignore = tuple(ignore_globs)
    excluded = frozenset(excluded_dirs)
    limit = max_files if max_files is not None else settings.max_files
    size_limit = max_file_size if max_file_size is not None else settings.max_file_size_bytes

    files: list[str] = []
    dirs: set[str] = set()
    meta: dict[str, FileMeta] = {}
    warnings: list[str] = []

    def _on_error(err: OSError) -> None:
        rel = _relative(root_path, err.filename) if err.filename else "?"
        warnings.append(f"{rel}: unreadable ({err.strerror or err})")

    truncated = False
    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
        rel_dir = _relative(root_path, dirpath)
        dirnames.sort()
        kept: list[str] = []
        for name in dirnames:
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if matches_any(rel, ignore, is_dir=True):
                continue
            dirs.add(rel)
            if name in excluded or os.path.islink(os.path.join(dirpath, name)):
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if rel == settings.cache_filename or matches_any(rel, ignore):
                continue
            if len(files) >= limit:
                truncated = True
                break
            try:
                st = os.stat(os.path.join(dirpath, name))
            except OSError as e:
                warnings.append(f"{rel}: unreadable ({e.strerror or e})")
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            files.append(rel)
            meta[rel] = FileMeta(size=st.st_size, mode=stat.S_IMODE(st.st_mode))
        if truncated:
            warnings.append(f"snapshot truncated at {limit} files")
            break

    files.sort()
    documents: dict[str, Any] = {}
    for name, kind in DOCUMENT_PARSERS.items():
        if name not in meta:
            continue
        parsed = _parse_document(root_path / name, kind, size_limit)
        if isinstance(parsed, str):
            warnings.append(f"{name}: {parsed}")
        else:
            documents[name] = parsed

    if warnings:
        logger.warning(f"Snapshot of {root_path} has {len(warnings)} warning(s)")
    logger.info(f"Snapshot: {len(files)} files, {len(dirs)} directories under {root_path}")

    return Snapshot(
        root=root_path,
        files=tuple(files),
        dirs=frozenset(dirs),
        meta=MappingProxyType(meta),
        documents=MappingProxyType(documents),
        warnings=tuple(warnings),
        max_file_size=size_limit,
    )


def _relative(root: Path, path: str | os.PathLike) -> str:
    rel = os.path.relpath(path, root)
    return "" if rel == "." else Path(rel).as_posix()


def _parse_document(path: Path, kind: str, size_limit: int) -> Any | str:
    """Parse a structured config file; returns an error string on failure."""
    try:
        if path.stat().st_size > size_limit:
            return "too large to parse"
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return f"unreadable ({e})"
    try:
        if kind == "json":
            return json.loads(text)
        if kind == "yaml":
            return yaml.safe_load(text)
        return tomllib.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        return f"unparsable {kind} ({type(e).__name__})"
