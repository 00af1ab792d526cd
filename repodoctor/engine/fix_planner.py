"""
Fix Planner — Builds a previewable, conflict-free FixPlan from issues.

Pipeline:
1. First matching fixer per auto-fixable issue (others → unfixable)
2. Group actions by target path
3. Merge each group by simulating it in order on the original content
4. Number actions, attach expected hashes, inverses and unified diffs

Planning reads the snapshot only; it never writes.
"""

from __future__ import annotations

import difflib
import logging
from collections import OrderedDict

from repodoctor.core.project import Project
from repodoctor.engine.fixers.base import Fixer, append_lines
from repodoctor.engine.fixers.registry import FIXER_REGISTRY, fixer_for_issue
from repodoctor.models.fix_models import FixAction, FixActionKind, FixPlan, InverseAction
from repodoctor.models.issue_models import Issue

logger = logging.getLogger("repodoctor.engine.planner")


def build_plan(
    issues: list[Issue],
    project: Project,
    fixers: list[Fixer] | None = None,
    only: list[str] | None = None,
) -> FixPlan:
    """
    Plan fixes for the auto-fixable issues.

    Args:
        issues: Final issues of a scan, in report order.
        project: The scanned project; its snapshot is the planning baseline.
        fixers: Fixers to match against, the registry by default.
        only: Optional rule ids to restrict the plan to.
    """
    fixers = fixers if fixers is not None else list(FIXER_REGISTRY.values())
    planned: list[FixAction] = []
    unfixable: list[str] = []

    for issue in issues:
        if not issue.auto_fixable or (only and issue.id not in only):
            continue
        fixer = fixer_for_issue(issue, fixers)
        if fixer is None:
            if issue.id not in unfixable:
                unfixable.append(issue.id)
            continue
        action = fixer.plan(issue, project)
        if action is not None:
            planned.append(action)

    merged, conflicts = merge(planned, project)
    merged.sort(key=lambda a: (a.kind is not FixActionKind.CREATE_DIRECTORY, a.path))

    actions = [
        finalize(action.model_copy(update={"id": f"fix-{n}"}), project)
        for n, action in enumerate(merged, start=1)
    ]
    plan = FixPlan(
        root=str(project.root), actions=actions, unfixable=unfixable, conflicts=conflicts
    )
    logger.info(
        f"Fix plan: {len(actions)} action(s), {len(unfixable)} unfixable, "
        f"{len(conflicts)} conflict(s)"
    )
    return plan


def merge(actions: list[FixAction], project: Project) -> tuple[list[FixAction], list[str]]:
    """Collapse actions that target the same path into one mutation each."""
    groups: OrderedDict[str, list[FixAction]] = OrderedDict()
    for action in actions:
        groups.setdefault(action.path, []).append(action)

    snapshot = project.snapshot
    merged: list[FixAction] = []
    conflicts: list[str] = []

    for path, group in groups.items():
        dirs = [a for a in group if a.kind is FixActionKind.CREATE_DIRECTORY]
        files = [a for a in group if a.kind is not FixActionKind.CREATE_DIRECTORY]

        if dirs and snapshot.is_file(path):
            conflicts.extend(f"{path}: {a.fixer} {a.kind.value} targets an existing file" for a in dirs)
            dirs = []
        if files and snapshot.is_dir(path):
            conflicts.extend(f"{path}: {a.fixer} {a.kind.value} targets an existing directory" for a in files)
            files = []
        if dirs and files:
            # The kind planned first wins the path
            dropped = files if group[0].kind is FixActionKind.CREATE_DIRECTORY else dirs
            conflicts.extend(f"{path}: {a.fixer} {a.kind.value} clashes with an earlier action" for a in dropped)
            if dropped is files:
                files = []
            else:
                dirs = []

        if dirs:
            merged.append(_combine(dirs, FixActionKind.CREATE_DIRECTORY))
        if files:
            action = _simulate(files, path, project, conflicts)
            if action is not None:
                merged.append(action)

    return merged, conflicts


def _combine(group: list[FixAction], kind: FixActionKind, **update) -> FixAction:
    issue_ids: list[str] = []
    for a in group:
        issue_ids.extend(i for i in a.issue_ids if i not in issue_ids)
    descriptions = list(dict.fromkeys(a.description for a in group))
    return group[0].model_copy(
        update={"kind": kind, "issue_ids": issue_ids, "description": "; ".join(descriptions), **update}
    )


def _simulate(
    group: list[FixAction], path: str, project: Project, conflicts: list[str]
) -> FixAction | None:
    exists = project.snapshot.is_file(path)
    original = project.snapshot.read_exact(path) if exists else None
    if exists and original is None:
        conflicts.extend(
            f"{path}: {a.fixer} {a.kind.value} skipped, file is not readable as UTF-8 text" for a in group
        )
        return None
    current = original
    applied: list[FixAction] = []

    # Creates run first so appends to the same new file merge into its content
    for action in sorted(group, key=lambda a: a.kind is not FixActionKind.CREATE_FILE):
        if action.kind is FixActionKind.CREATE_FILE:
            if current is not None:
                conflicts.append(f"{path}: {action.fixer} create_file skipped, content already planned")
                continue
            current = action.content
        elif action.kind is FixActionKind.APPEND_LINES:
            current = append_lines(current or "", action.lines)
        else:
            if current != original:
                conflicts.append(f"{path}: {action.fixer} write_file clashes with earlier edits")
                continue
            current = action.content
        applied.append(action)

    if not applied or current == original:
        return None

    if all(a.kind is FixActionKind.APPEND_LINES for a in applied):
        present = {line.strip() for line in (original or "").splitlines()}
        lines: list[str] = []
        for a in applied:
            lines.extend(line for line in a.lines if line.strip() not in present and line not in lines)
        return _combine(applied, FixActionKind.APPEND_LINES, lines=lines, content="")

    kind = FixActionKind.CREATE_FILE if original is None else FixActionKind.WRITE_FILE
    return _combine(applied, kind, content=current, lines=[])


def finalize(action: FixAction, project: Project) -> FixAction:
    """Attach expected hash, inverse and diff computed against the snapshot."""
    snapshot = project.snapshot
    path = action.path

    if action.kind is FixActionKind.CREATE_DIRECTORY:
        return action.model_copy(
            update={
                "expected_hash": None,
                "inverse": InverseAction(
                    kind="remove_directory", path=path, description=f"Remove {path}/ if still empty"
                ),
                "diff": f"+++ b/{path}/ (new directory)\n",
            }
        )

    exists = snapshot.is_file(path)
    original = snapshot.read_exact(path) if exists else None
    if action.kind is FixActionKind.APPEND_LINES:
        final = append_lines(original or "", action.lines)
    else:
        final = action.content

    if exists:
        inverse = InverseAction(
            kind="restore_content", path=path, description=f"Restore original {path}"
        )
    else:
        inverse = InverseAction(kind="remove_file", path=path, description=f"Delete {path}")

    diff = "".join(
        difflib.unified_diff(
            (original or "").splitlines(keepends=True),
            final.splitlines(keepends=True),
            fromfile=f"a/{path}" if exists else "/dev/null",
            tofile=f"b/{path}",
        )
    )
    return action.model_copy(
        update={
            "expected_hash": snapshot.content_hash(path) if exists else None,
            "inverse": inverse,
            "diff": diff,
        }
    )


def preview(plan: FixPlan) -> str:
    """Render the plan as headers plus unified diffs. Touches no files."""
    if plan.is_empty and not plan.unfixable and not plan.conflicts:
        return "Nothing to fix.\n"
    out: list[str] = []
    for action in plan.actions:
        out.append(
            f"# {action.id} [{action.fixer}] {action.kind.value} {action.path} "
            f"({', '.join(action.issue_ids)}): {action.description}\n"
        )
        out.append(action.diff)
        if action.diff and not action.diff.endswith("\n"):
            out.append("\n")
    if plan.unfixable:
        out.append(f"# No fixer available for: {', '.join(plan.unfixable)}\n")
    for conflict in plan.conflicts:
        out.append(f"# Skipped: {conflict}\n")
    return "".join(out)
