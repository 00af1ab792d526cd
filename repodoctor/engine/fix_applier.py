"""
Fix Applier — Applies a FixPlan as one transactional batch.

Actions run strictly in order. Each is idempotent, prechecked against the
hash taken at planning time, and registered with the RollbackManager
before it mutates anything. The first failure reverts every action
already applied, most recent first.
"""

from __future__ import annotations

import logging
from pathlib import Path

from repodoctor.engine.fixers.base import Fixer
from repodoctor.engine.fixers.registry import FIXER_REGISTRY
from repodoctor.engine.rollback_manager import RollbackManager
from repodoctor.errors import FixError
from repodoctor.models.fix_models import FixFailure, FixPlan, FixReport

logger = logging.getLogger("repodoctor.engine.applier")


def apply_plan(
    plan: FixPlan,
    root: str | Path | None = None,
    fixers: dict[str, Fixer] | None = None,
) -> FixReport:
    """
    Apply every action of the plan, or none of them.

    Returns:
        FixReport with status "applied", "noop" or "failed". A failure
        names the action, path and reason, and lists what was rolled back.
    """
    root_path = Path(root if root is not None else plan.root)
    registry = fixers if fixers is not None else FIXER_REGISTRY
    rollback = RollbackManager()
    report = FixReport()

    for action in plan.actions:
        fixer = registry.get(action.fixer)
        try:
            if fixer is None:
                raise FixError(action.id, action.path, f"unknown fixer '{action.fixer}'")
            mutated = fixer.apply(action, root_path, rollback)
        except FixError as e:
            logger.error(f"Fix batch failed at {e.action_id} ({e.path}): {e.reason}")
            report.failed = FixFailure(action_id=e.action_id, path=e.path, reason=e.reason)
            report.rolled_back, report.rollback_errors = rollback.rollback_all()
            report.fixed_issue_ids = []
            report.status = "failed"
            return report

        if mutated:
            report.applied.append(action.id)
        else:
            report.unchanged.append(action.id)
        for issue_id in action.issue_ids:
            if issue_id not in report.fixed_issue_ids:
                report.fixed_issue_ids.append(issue_id)

    report.status = "applied" if report.applied else "noop"
    rollback.clear()
    logger.info(
        f"Fix batch {report.status}: {len(report.applied)} applied, "
        f"{len(report.unchanged)} unchanged"
    )
    return report
