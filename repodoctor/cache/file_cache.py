"""
File Cache — SHA-256 content-fingerprint cache persisted as versioned JSON.

Maps "<scope>|<path>|<sha256>" to the issues a per-file text scan produced.
Unchanged files skip re-scanning. The cache is an optimization only: a
missing, corrupt or schema-mismatched file is discarded and results are
identical with or without it.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from repodoctor.config import settings
from repodoctor.models.issue_models import Issue

logger = logging.getLogger("repodoctor.cache")

SCHEMA_VERSION = 1


@dataclass
class CacheEntry:
    """Cached findings for a single file version."""

    issues: list[Issue]
    timestamp: float = field(default_factory=time.time)

    def is_expired(self, ttl_seconds: float) -> bool:
        return (time.time() - self.timestamp) > ttl_seconds


class FileCache:
    """
    Thread-safe file-level cache keyed by SHA-256 of file content.

    Analyzers running in parallel threads share one instance; every access
    goes through the lock.
    """

    def __init__(self, path: str | Path | None = None, ttl_seconds: float | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._dirty = False
        self.hits = 0
        self.misses = 0

    @classmethod
    def for_root(cls, root: str | Path) -> FileCache:
        """Open (and load) the cache file at the repository root."""
        cache = cls(Path(root) / settings.cache_filename)
        cache.load()
        return cache

    @staticmethod
    def hash_content(content: str | bytes) -> str:
        """Compute SHA-256 hash of file content."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        return hashlib.sha256(content).hexdigest()

    @staticmethod
    def _key(scope: str, file_path: str, content_hash: str) -> str:
        return f"{scope}|{file_path}|{content_hash}"

    # ── Lookup ──

    def get(self, scope: str, file_path: str, content_hash: str) -> list[Issue] | None:
        """
        Look up cached issues for a file version.

        Returns None if not cached, expired, or content has changed.
        """
        key = self._key(scope, file_path, content_hash)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired(self.ttl_seconds):
                del self._store[key]
                self._dirty = True
                self.misses += 1
                return None
            self.hits += 1
            return list(entry.issues)

    def put(self, scope: str, file_path: str, content_hash: str, issues: list[Issue]) -> None:
        """Cache scan results for a file version, replacing older versions."""
        prefix = f"{scope}|{file_path}|"
        key = prefix + content_hash
        with self._lock:
            for stale in [k for k in self._store if k.startswith(prefix) and k != key]:
                del self._store[stale]
            self._store[key] = CacheEntry(issues=list(issues))
            self._dirty = True

    def invalidate(self, file_path: str) -> int:
        """Remove all cached entries for a file path. Returns count removed."""
        with self._lock:
            keys_to_remove = [k for k in self._store if k.split("|", 2)[1] == file_path]
            for key in keys_to_remove:
                del self._store[key]
            if keys_to_remove:
                self._dirty = True
            return len(keys_to_remove)

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._store.clear()
            self._dirty = True

    @property
    def size(self) -> int:
        """Number of cached entries."""
        return len(self._store)

    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        with self._lock:
            expired = sum(1 for e in self._store.values() if e.is_expired(self.ttl_seconds))
            total = len(self._store)
        return {
            "total_entries": total,
            "expired_entries": expired,
            "active_entries": total - expired,
            "hits": self.hits,
            "misses": self.misses,
        }

    # ── Persistence ──

    def load(self) -> None:
        """Read the cache file; anything unexpected discards it wholesale."""
        if self.path is None or not self.path.is_file():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Discarding unreadable cache {self.path}: {e}")
            self._reset()
            return

        if not isinstance(raw, dict) or raw.get("schema_version") != SCHEMA_VERSION:
            logger.info(f"Discarding cache {self.path}: schema version mismatch")
            self._reset()
            return

        store: dict[str, CacheEntry] = {}
        try:
            for key, value in (raw.get("entries") or {}).items():
                if key.count("|") < 2:
                    raise ValueError(f"malformed key {key!r}")
                entry = CacheEntry(
                    issues=[Issue.model_validate(item) for item in value["issues"]],
                    timestamp=float(value["timestamp"]),
                )
                if not entry.is_expired(self.ttl_seconds):
                    store[key] = entry
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Discarding corrupt cache {self.path}: {e}")
            self._reset()
            return

        with self._lock:
            self._store = store
            self._dirty = len(store) != len(raw.get("entries") or {})
        logger.debug(f"Loaded {len(store)} cache entries from {self.path}")

    def save(self) -> bool:
        """Atomically write the cache file if anything changed. Never raises."""
        if self.path is None:
            return False
        with self._lock:
            if not self._dirty:
                return False
            payload = {
                "schema_version": SCHEMA_VERSION,
                "entries": {
                    key: {
                        "timestamp": entry.timestamp,
                        "issues": [issue.model_dump(mode="json") for issue in entry.issues],
                    }
                    for key, entry in sorted(self._store.items())
                },
            }
            self._dirty = False

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, sort_keys=True)
            os.replace(tmp_name, self.path)
            return True
        except OSError as e:
            logger.warning(f"Could not write cache {self.path}: {e}")
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

    def _reset(self) -> None:
        with self._lock:
            self._store = {}
            self._dirty = True
