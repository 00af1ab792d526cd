"""
Orchestrator — Runs the applicable analyzers concurrently under one deadline.

Pipeline:
1. Select analyzers whose applies_to() holds and the ruleset enables
2. Run each in a worker thread; a semaphore slot is held until the thread returns
3. Per-analyzer soft timeout → synthetic SYS-001 (Info)
4. AnalyzeError or unexpected failure → synthetic SYS-002 (Low)
5. Global deadline: completed results kept, pending analyzers cancelled
6. Ignore paths → ignore rules → severity threshold
7. Deterministic sort
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from fnmatch import fnmatchcase

from repodoctor.config import settings
from repodoctor.core.analyzer_registry import ANALYZER_REGISTRY, CUSTOM_RULE_ANALYZER
from repodoctor.core.analyzers.base import Analyzer, CancelToken
from repodoctor.core.globs import matches_any
from repodoctor.core.project import Project
from repodoctor.errors import AnalysisCancelled, AnalyzeError, AnalyzerTimeoutError
from repodoctor.models.issue_models import Issue, Severity
from repodoctor.models.ruleset_models import EffectiveRuleset

logger = logging.getLogger("repodoctor.orchestrator")

TIMEOUT_RULE_ID = "SYS-001"
FAILURE_RULE_ID = "SYS-002"


@dataclass
class AnalyzerOutcome:
    """Per-task result buffer, merged after join."""

    name: str
    issues: list[Issue] = field(default_factory=list)
    status: str = "ok"  # ok | timed_out | failed
    duration_ms: float = 0.0
    error: str | None = None


@dataclass
class OrchestratorResult:
    issues: list[Issue]
    analyzers_run: list[str]
    timed_out: list[str]
    failed: list[str]
    suppressed: int
    duration_ms: float
    deadline_seconds: float


def scan_deadline(file_count: int) -> float:
    """Global budget: base + per-file allowance, capped."""
    budget = settings.scan_deadline_base_seconds + file_count * settings.scan_deadline_per_file_ms / 1000
    return min(settings.scan_deadline_max_seconds, budget)


def synthetic_issue(analyzer: Analyzer, rule_id: str, reason: str) -> Issue:
    if rule_id == TIMEOUT_RULE_ID:
        severity, title = Severity.INFO, f"Analyzer '{analyzer.name}' timed out"
        suggestion = "Raise analyzer_timeout_seconds or narrow the scan with ignore.paths"
    else:
        severity, title = Severity.LOW, f"Analyzer '{analyzer.name}' failed"
        suggestion = "Check the repository files this analyzer reads"
    return Issue(
        id=rule_id,
        analyzer=analyzer.name,
        category=analyzer.category,
        severity=severity,
        title=title,
        description=reason,
        suggestion=suggestion,
    )


class Orchestrator:
    """
    Concurrent analyzer runner.

    Analyzers only read the shared Snapshot; each task writes to its own
    AnalyzerOutcome, so no collector locking is needed.
    """

    def __init__(
        self,
        analyzers: dict[str, Analyzer] | None = None,
        max_concurrency: int | None = None,
        analyzer_timeout: float | None = None,
        deadline: float | None = None,
    ) -> None:
        self.analyzers = analyzers if analyzers is not None else ANALYZER_REGISTRY
        self.max_concurrency = max_concurrency or settings.max_concurrency
        self.analyzer_timeout = analyzer_timeout or settings.analyzer_timeout_seconds
        self.deadline = deadline

    def select(self, project: Project, ruleset: EffectiveRuleset) -> list[Analyzer]:
        selected = [
            a
            for a in self.analyzers.values()
            if ruleset.analyzer_enabled(a.name) and a.applies_to(project)
        ]
        if ruleset.custom_rules:
            selected.append(CUSTOM_RULE_ANALYZER)
        return selected

    async def run(self, project: Project, ruleset: EffectiveRuleset) -> OrchestratorResult:
        start = time.monotonic()
        selected = self.select(project, ruleset)
        deadline = self.deadline if self.deadline is not None else scan_deadline(len(project.snapshot.files))
        semaphore = asyncio.Semaphore(self.max_concurrency)
        logger.info(
            f"Running {len(selected)} analyzers ({', '.join(a.name for a in selected)}) "
            f"with deadline {deadline:.1f}s"
        )

        tokens = {a.name: CancelToken() for a in selected}
        tasks = {
            asyncio.create_task(self._run_one(a, project, ruleset, tokens[a.name], semaphore)): a
            for a in selected
        }

        outcomes: list[AnalyzerOutcome] = []
        if tasks:
            done, pending = await asyncio.wait(tasks.keys(), timeout=deadline)
            for task in done:
                outcomes.append(task.result())
            for task in pending:
                analyzer = tasks[task]
                tokens[analyzer.name].cancel()
                task.cancel()
                logger.warning(f"Analyzer '{analyzer.name}' cancelled at the scan deadline")
                outcomes.append(
                    AnalyzerOutcome(
                        name=analyzer.name,
                        issues=[
                            synthetic_issue(
                                analyzer,
                                TIMEOUT_RULE_ID,
                                f"Analyzer '{analyzer.name}' did not finish before the "
                                f"scan deadline ({deadline:g}s)",
                            )
                        ],
                        status="timed_out",
                    )
                )
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        outcomes.sort(key=lambda o: o.name)
        merged = [issue for outcome in outcomes for issue in outcome.issues]
        issues = filter_issues(merged, ruleset)
        issues.sort(key=Issue.sort_key)

        elapsed = (time.monotonic() - start) * 1000
        result = OrchestratorResult(
            issues=issues,
            analyzers_run=[o.name for o in outcomes],
            timed_out=[o.name for o in outcomes if o.status == "timed_out"],
            failed=[o.name for o in outcomes if o.status == "failed"],
            suppressed=len(merged) - len(issues),
            duration_ms=round(elapsed, 2),
            deadline_seconds=deadline,
        )
        logger.info(
            f"Orchestrator: {len(issues)} issues ({result.suppressed} suppressed), "
            f"{len(result.timed_out)} timed out, {len(result.failed)} failed "
            f"({result.duration_ms:.1f}ms)"
        )
        return result

    async def _run_one(
        self,
        analyzer: Analyzer,
        project: Project,
        ruleset: EffectiveRuleset,
        token: CancelToken,
        semaphore: asyncio.Semaphore,
    ) -> AnalyzerOutcome:
        await semaphore.acquire()
        start = time.monotonic()
        outcome = AnalyzerOutcome(name=analyzer.name)
        # The slot is held until the worker thread returns, even after a timeout
        work = asyncio.ensure_future(asyncio.to_thread(_analyze, analyzer, project, ruleset, token))
        work.add_done_callback(lambda task: _release_slot(task, semaphore))
        try:
            outcome.issues = await asyncio.wait_for(
                asyncio.shield(work), timeout=self.analyzer_timeout
            )
        except asyncio.TimeoutError:
            token.cancel()
            err = AnalyzerTimeoutError(analyzer.name, self.analyzer_timeout)
            logger.warning(str(err))
            outcome.status, outcome.error = "timed_out", err.reason
            outcome.issues = [synthetic_issue(analyzer, TIMEOUT_RULE_ID, str(err))]
        except AnalysisCancelled:
            outcome.status, outcome.error = "timed_out", "cancelled"
            outcome.issues = [
                synthetic_issue(
                    analyzer, TIMEOUT_RULE_ID, f"Analyzer '{analyzer.name}' was cancelled"
                )
            ]
        except AnalyzeError as e:
            logger.warning(str(e))
            outcome.status, outcome.error = "failed", e.reason
            outcome.issues = [synthetic_issue(analyzer, FAILURE_RULE_ID, str(e))]
        except Exception as e:
            # Analyzer bugs degrade coverage, they never abort the scan
            logger.exception(f"Analyzer '{analyzer.name}' raised unexpectedly")
            outcome.status, outcome.error = "failed", f"{type(e).__name__}: {e}"
            outcome.issues = [
                synthetic_issue(
                    analyzer,
                    FAILURE_RULE_ID,
                    f"analyzer '{analyzer.name}' failed: {type(e).__name__}: {e}",
                )
            ]
        outcome.duration_ms = round((time.monotonic() - start) * 1000, 2)
        logger.debug(
            f"Analyzer '{analyzer.name}': {len(outcome.issues)} issues, "
            f"status={outcome.status} ({outcome.duration_ms:.1f}ms)"
        )
        return outcome


def _analyze(
    analyzer: Analyzer, project: Project, ruleset: EffectiveRuleset, token: CancelToken
) -> list[Issue]:
    token.check()
    return analyzer.analyze(project, ruleset, token)


def _release_slot(task: asyncio.Future, semaphore: asyncio.Semaphore) -> None:
    semaphore.release()
    if not task.cancelled():
        # Failures after a timeout are already reported as SYS-001
        task.exception()


# ── Filters ──


def rule_ignored(rule_id: str, patterns: tuple[str, ...]) -> bool:
    return any(rule_id == p or fnmatchcase(rule_id, p) for p in patterns)


def filter_issues(issues: list[Issue], ruleset: EffectiveRuleset) -> list[Issue]:
    """Ignore paths, then ignore rules, then severity threshold."""
    kept = [i for i in issues if i.file is None or not matches_any(i.file, ruleset.ignore_paths)]
    kept = [i for i in kept if not rule_ignored(i.id, ruleset.ignore_rules)]
    return [i for i in kept if i.severity.at_least(ruleset.severity_threshold)]
