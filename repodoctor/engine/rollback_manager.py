"""
Rollback Manager — Records how to undo each applied fix action.

Before any action mutates the tree, its inverse is registered here:
created directories are removed, created files deleted, and overwritten
files restored to their original bytes and mode. On failure the whole
batch is undone in reverse order.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger("repodoctor.engine.rollback")


def atomic_write(target: Path, data: bytes, mode: int | None = None) -> None:
    """Write via a temp file in the same directory and os.replace()."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_name, mode if mode is not None else 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def missing_dirs(path: Path) -> list[Path]:
    """Ancestors of path (and path itself) that do not exist yet, outermost first."""
    out: list[Path] = []
    current = path
    while not current.exists():
        out.append(current)
        if current.parent == current:
            break
        current = current.parent
    return list(reversed(out))


@dataclass
class RollbackEntry:
    """Inverse of one applied action."""

    action_id: str
    path: Path
    kind: str  # remove_directory | remove_file | restore_content
    original: bytes | None = None
    mode: int | None = None
    created_dirs: list[Path] = field(default_factory=list)


class RollbackManager:
    """
    Stack of inverses for one apply batch.

    Usage:
        mgr = RollbackManager()
        mgr.register_restore("fix-2", path, original_bytes, mode)
        # ... mutate ...
        if failed:
            rolled_back, errors = mgr.rollback_all()
    """

    def __init__(self) -> None:
        self._entries: list[RollbackEntry] = []

    def register_created_dirs(self, action_id: str, path: Path, created: list[Path]) -> None:
        self._entries.append(
            RollbackEntry(action_id=action_id, path=path, kind="remove_directory", created_dirs=created)
        )
        logger.debug(f"Inverse registered for {action_id}: remove {len(created)} dir(s)")

    def register_created_file(self, action_id: str, path: Path, created_dirs: list[Path]) -> None:
        self._entries.append(
            RollbackEntry(action_id=action_id, path=path, kind="remove_file", created_dirs=created_dirs)
        )
        logger.debug(f"Inverse registered for {action_id}: remove {path}")

    def register_restore(self, action_id: str, path: Path, original: bytes, mode: int) -> None:
        self._entries.append(
            RollbackEntry(
                action_id=action_id, path=path, kind="restore_content", original=original, mode=mode
            )
        )
        logger.debug(f"Inverse registered for {action_id}: restore {path}")

    @property
    def action_ids(self) -> list[str]:
        return [e.action_id for e in self._entries]

    def rollback_all(self) -> tuple[list[str], list[str]]:
        """
        Undo every registered action, most recent first.

        Returns:
            (ids rolled back, error messages). Keeps going after an error so
            as much of the tree as possible is restored.
        """
        rolled_back: list[str] = []
        errors: list[str] = []
        while self._entries:
            entry = self._entries.pop()
            try:
                self._undo(entry)
                rolled_back.append(entry.action_id)
                logger.info(f"Rolled back {entry.action_id} ({entry.kind} {entry.path})")
            except OSError as e:
                errors.append(f"{entry.action_id}: {entry.path}: {e}")
                logger.error(f"Rollback of {entry.action_id} failed: {e}")
        return rolled_back, errors

    def _undo(self, entry: RollbackEntry) -> None:
        if entry.kind == "restore_content":
            atomic_write(entry.path, entry.original or b"", entry.mode)
            return
        if entry.kind == "remove_file" and entry.path.exists():
            entry.path.unlink()
        for directory in reversed(entry.created_dirs):
            if directory.is_dir():
                directory.rmdir()

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Rollback entries cleared")
