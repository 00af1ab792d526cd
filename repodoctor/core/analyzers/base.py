"""
Analyzer base — The capability set every analyzer implements.

Analyzers are stateless: all inputs arrive through analyze(), which runs in
a worker thread and must poll the CancelToken inside file loops.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Iterable

from repodoctor.core.project import Project
from repodoctor.errors import AnalysisCancelled
from repodoctor.models.issue_models import CATEGORY_WEIGHTS, Category, Issue, Rule
from repodoctor.models.ruleset_models import EffectiveRuleset


class CancelToken:
    """Advisory cancellation flag shared between the orchestrator and one analyzer."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise AnalysisCancelled once cancelled; call before starting new work."""
        if self._event.is_set():
            raise AnalysisCancelled("analysis cancelled")


def catalog(*rules: Rule) -> dict[str, Rule]:
    return {rule.id: rule for rule in rules}


class Analyzer(ABC):
    name: str = ""
    description: str = ""
    category: Category = Category.STRUCTURE
    rules: dict[str, Rule] = {}

    @property
    def weight(self) -> int:
        return CATEGORY_WEIGHTS[self.category]

    def applies_to(self, project: Project) -> bool:
        return True

    @abstractmethod
    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        """Return findings; may raise AnalyzeError."""

    def param(self, ruleset: EffectiveRuleset, key: str, default: Any = None) -> Any:
        value = ruleset.param(self.name, key, default)
        return default if value is None and default is not None else value

    def issue(
        self,
        rule_id: str,
        description: str = "",
        *,
        title: str | None = None,
        file: str | None = None,
        line: int | None = None,
        suggestion: str | None = None,
        references: Iterable[str] = (),
        metadata: dict[str, Any] | None = None,
    ) -> Issue:
        """Build an Issue from the analyzer's own catalog entry."""
        rule = self.rules[rule_id]
        return Issue(
            id=rule.id,
            analyzer=self.name,
            category=rule.category or self.category,
            severity=rule.severity,
            title=title or rule.title,
            description=description,
            file=file,
            line=line,
            suggestion=suggestion,
            auto_fixable=rule.auto_fixable,
            references=tuple(references),
            metadata=metadata or {},
        )


# ── Shared helpers ──


def gitignore_lines(project: Project) -> list[str] | None:
    """Stripped, non-comment .gitignore lines; None if there is no .gitignore."""
    text = project.snapshot.read_text(".gitignore")
    if text is None:
        return None
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def gitignore_covers(lines: Iterable[str], entry: str, *aliases: str) -> bool:
    """True if .gitignore lists the entry, its anchored form or an alias."""
    base = entry.rstrip("/")
    accepted = {entry, f"/{entry}", base, f"/{base}", f"{base}/", f"/{base}/", *aliases}
    return any(line in accepted for line in lines)


def env_is_gitignored(lines: Iterable[str] | None) -> bool:
    if lines is None:
        return False
    return gitignore_covers(lines, ".env", ".env*", ".env.*")


def parse_major_version(constraint: Any) -> int | None:
    """Major version from constraints like '^6.4', '~5.1', '>=2.19.0 <4.0.0'."""
    if not isinstance(constraint, str):
        return None
    cleaned = constraint.strip()
    for prefix in ("^", "~", ">=", "<=", ">", "<", "=", "v"):
        cleaned = cleaned.removeprefix(prefix)
    head = cleaned.strip().split(".", 1)[0].split(" ", 1)[0]
    return int(head) if head.isdigit() else None
