"""
Project — The snapshot paired with its detected framework.

This is the read-only value handed to every analyzer and fixer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from repodoctor.core.detector import detect
from repodoctor.core.snapshot import Snapshot, build_snapshot
from repodoctor.models.project_models import DetectedFramework, Framework

if TYPE_CHECKING:
    from repodoctor.cache.file_cache import FileCache


@dataclass(frozen=True)
class Project:
    snapshot: Snapshot
    detected: DetectedFramework
    cache: "FileCache | None" = None

    @property
    def root(self) -> Path:
        return self.snapshot.root

    @property
    def framework(self) -> Framework:
        return self.detected.framework

    @classmethod
    def load(
        cls,
        root: str | Path,
        ignore_globs: Iterable[str] = (),
        cache: "FileCache | None" = None,
    ) -> Project:
        snapshot = build_snapshot(root, ignore_globs)
        return cls(snapshot=snapshot, detected=detect(snapshot), cache=cache)
