"""
Fixer base — Planning and applying single-path, reversible mutations.

A fixer turns one auto-fixable Issue into a FixAction. Applying is driven
by the action kind, so every fixer shares the same idempotence check,
hash precheck, inverse registration and atomic write.
"""

from __future__ import annotations

import hashlib
import logging
import stat
from abc import ABC, abstractmethod
from pathlib import Path

from repodoctor.core.project import Project
from repodoctor.engine.rollback_manager import RollbackManager, atomic_write, missing_dirs
from repodoctor.errors import FixError
from repodoctor.models.fix_models import FixAction, FixActionKind
from repodoctor.models.issue_models import Issue

logger = logging.getLogger("repodoctor.engine.fixers")


def append_lines(text: str, lines: list[str]) -> str:
    """Append lines not already present (compared stripped) in the text's own line ending."""
    newline = "\r\n" if "\r\n" in text else "\n"
    present = {line.strip() for line in text.splitlines()}
    out = text
    for line in lines:
        if line.strip() in present:
            continue
        if out and not out.endswith("\n"):
            out += newline
        out += line + newline
        present.add(line.strip())
    return out


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def decode_exact(action: FixAction, data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FixError(action.id, action.path, "not valid UTF-8 text, refusing a lossy rewrite") from e


class Fixer(ABC):
    name: str = ""
    handles: tuple[str, ...] = ()

    def can_fix(self, issue: Issue) -> bool:
        return issue.auto_fixable and issue.id in self.handles

    @abstractmethod
    def plan(self, issue: Issue, project: Project) -> FixAction | None:
        """Describe the mutation; None when the tree already satisfies it."""

    def action(
        self,
        issue: Issue,
        kind: FixActionKind,
        path: str,
        description: str,
        *,
        content: str = "",
        lines: list[str] | None = None,
    ) -> FixAction:
        return FixAction(
            id=f"{self.name}:{path}",
            fixer=self.name,
            kind=kind,
            path=path,
            issue_ids=[issue.id],
            description=description,
            content=content,
            lines=lines or [],
        )

    def apply(self, action: FixAction, root: Path, rollback: RollbackManager) -> bool:
        """
        Apply one action.

        Returns:
            True if the tree was mutated, False if it already matched.

        Raises:
            FixError: path escapes the root, target changed since planning,
                or the filesystem refused the write.
        """
        target = resolve_target(root, action)
        try:
            if is_satisfied(action, target):
                logger.info(f"{action.id}: {action.path} already satisfied")
                return False
            precheck(action, target)

            if action.kind is FixActionKind.CREATE_DIRECTORY:
                created = missing_dirs(target)
                rollback.register_created_dirs(action.id, target, created)
                target.mkdir(parents=True, exist_ok=True)
            else:
                if target.exists():
                    original = target.read_bytes()
                    mode = stat.S_IMODE(target.stat().st_mode)
                    rollback.register_restore(action.id, target, original, mode)
                    current = decode_exact(action, original)
                else:
                    mode = None
                    rollback.register_created_file(action.id, target, missing_dirs(target.parent))
                    current = ""
                atomic_write(target, render(action, current).encode("utf-8"), mode)
        except OSError as e:
            raise FixError(action.id, action.path, str(e)) from e

        logger.info(f"{action.id}: {action.kind.value} {action.path}")
        return True


# ── Apply helpers ──


def resolve_target(root: Path, action: FixAction) -> Path:
    root = root.resolve()
    target = (root / action.path).resolve()
    if target != root and not target.is_relative_to(root):
        raise FixError(action.id, action.path, "path escapes the repository root")
    return target


def render(action: FixAction, current: str) -> str:
    if action.kind is FixActionKind.APPEND_LINES:
        return append_lines(current, action.lines)
    return action.content


def is_satisfied(action: FixAction, target: Path) -> bool:
    if action.kind is FixActionKind.CREATE_DIRECTORY:
        return target.is_dir()
    if not target.is_file():
        return False
    try:
        current = target.read_bytes().decode("utf-8")
    except UnicodeDecodeError:
        return False
    return render(action, current) == current


def precheck(action: FixAction, target: Path) -> None:
    if action.kind is FixActionKind.CREATE_DIRECTORY:
        if target.exists():
            raise FixError(action.id, action.path, "exists and is not a directory")
        return
    if target.is_dir():
        raise FixError(action.id, action.path, "exists and is a directory")
    current = sha256_bytes(target.read_bytes()) if target.is_file() else None
    if current != action.expected_hash:
        raise FixError(action.id, action.path, "modified since the plan was made")
