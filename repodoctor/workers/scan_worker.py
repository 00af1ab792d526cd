"""
Scan Worker — Async pipeline from repository root to ScanResult.

Pipeline:
1. Resolve the EffectiveRuleset (preset → .repodoctor.yml → overrides)
2. Build the snapshot and detect the framework
3. Run the analyzers through the orchestrator
4. Compute the health score and the CI verdict
5. Persist the content-fingerprint cache

Fix planning and application run only after a scan has completed.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Iterable

from repodoctor.cache.file_cache import FileCache
from repodoctor.config import settings
from repodoctor.core import scorer
from repodoctor.core.orchestrator import Orchestrator
from repodoctor.core.project import Project
from repodoctor.core.ruleset import load_repo_config, resolve_ruleset
from repodoctor.engine import fix_applier, fix_planner
from repodoctor.models.fix_models import FixPlan, FixReport
from repodoctor.models.issue_models import Issue
from repodoctor.models.ruleset_models import EffectiveRuleset
from repodoctor.models.scan_models import AuditEntry, FixAuditEntry, ScanResult

logger = logging.getLogger("repodoctor.worker")


class ScanWorker:
    """Async scan orchestrator implementing the full diagnostic pipeline."""

    def __init__(
        self,
        orchestrator: Orchestrator | None = None,
        cache_enabled: bool | None = None,
    ) -> None:
        self.orchestrator = orchestrator or Orchestrator()
        self.cache_enabled = settings.cache_enabled if cache_enabled is None else cache_enabled

    async def scan(
        self,
        root: str | Path,
        ruleset: EffectiveRuleset | None = None,
        preset: str | None = None,
        overrides: dict[str, Any] | None = None,
        ignore_paths: Iterable[str] = (),
        use_repo_config: bool = True,
    ) -> ScanResult:
        result, _ = await self.scan_project(
            root, ruleset, preset, overrides, ignore_paths, use_repo_config
        )
        return result

    async def scan_project(
        self,
        root: str | Path,
        ruleset: EffectiveRuleset | None = None,
        preset: str | None = None,
        overrides: dict[str, Any] | None = None,
        ignore_paths: Iterable[str] = (),
        use_repo_config: bool = True,
    ) -> tuple[ScanResult, Project]:
        """
        Scan a repository and keep the Project for fix planning.

        Raises:
            ConfigError: invalid preset, repository config or override.
            FsError: unreadable repository root.
        """
        scan_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        logger.info(f"[{scan_id}] Starting scan of {root}")

        # ── Step 1: Ruleset ──
        if ruleset is None:
            repo_config = load_repo_config(root) if use_repo_config else None
            ruleset = resolve_ruleset(preset, repo_config, overrides, repo_root=root)

        # ── Step 2: Snapshot + detection ──
        cache = FileCache.for_root(root) if self.cache_enabled and Path(root).is_dir() else None
        project = await asyncio.to_thread(Project.load, root, tuple(ignore_paths), cache)
        logger.info(
            f"[{scan_id}] {project.framework.display_name} project, "
            f"{len(project.snapshot.files)} files"
        )

        # ── Step 3: Analyzers ──
        outcome = await self.orchestrator.run(project, ruleset)

        # ── Step 4: Score + CI verdict ──
        health = scorer.calculate(outcome.issues)
        ci_passed = scorer.passes_ci(outcome.issues, health, ruleset)

        # ── Step 5: Cache ──
        if cache is not None:
            await asyncio.to_thread(cache.save)
            stats = cache.stats()
            logger.debug(f"[{scan_id}] Cache: {stats['hits']} hits, {stats['misses']} misses")

        elapsed_ms = (time.monotonic() - start_time) * 1000
        result = ScanResult(
            scan_id=scan_id,
            root=str(project.root),
            framework=project.detected,
            issues=outcome.issues,
            health_score=health,
            duration_ms=round(elapsed_ms, 2),
            preset=ruleset.preset,
            files_scanned=len(project.snapshot.files),
            analyzers_run=outcome.analyzers_run,
            timed_out=outcome.timed_out,
            failed=outcome.failed,
            warnings=list(project.snapshot.warnings),
            ci_passed=ci_passed,
        )
        logger.info(
            f"[{scan_id}] Scan complete in {elapsed_ms:.0f}ms: "
            f"{len(outcome.issues)} issues, score={health.total} ({health.grade.value}), "
            f"ci={'pass' if ci_passed else 'fail'}"
        )
        return result, project

    # ── Fixes ──

    def plan_fixes(
        self, issues: list[Issue], project: Project, only: list[str] | None = None
    ) -> FixPlan:
        return fix_planner.build_plan(issues, project, only=only)

    def preview(self, plan: FixPlan) -> str:
        return fix_planner.preview(plan)

    async def apply_fixes(self, plan: FixPlan) -> FixReport:
        """Apply a plan sequentially in a worker thread."""
        return await asyncio.to_thread(fix_applier.apply_plan, plan)


def build_audit_entry(result: ScanResult) -> AuditEntry:
    return AuditEntry(
        scan_id=result.scan_id,
        root=result.root,
        framework=result.framework.framework.value,
        files_scanned=result.files_scanned,
        issues_found=len(result.issues),
        health_score=result.health_score.total,
        grade=result.health_score.grade.value,
        ci_passed=result.ci_passed,
        analyzers_run=result.analyzers_run,
        timed_out=result.timed_out,
        failed=result.failed,
        duration_ms=result.duration_ms,
    )


def build_fix_audit_entry(scan_id: str, plan: FixPlan, report: FixReport) -> FixAuditEntry:
    failure = report.failed
    return FixAuditEntry(
        scan_id=scan_id,
        root=plan.root,
        status=report.status,
        actions_planned=len(plan.actions),
        applied=report.applied,
        unchanged=report.unchanged,
        failed_action=failure.action_id if failure else None,
        failed_path=failure.path if failure else None,
        failed_reason=failure.reason if failure else None,
        rolled_back=report.rolled_back,
        rollback_errors=report.rollback_errors,
        fixed_issue_ids=report.fixed_issue_ids,
        unfixable=plan.unfixable,
    )
