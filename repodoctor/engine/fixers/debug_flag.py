"""
Debug Flag Fixer — Turns `debug: true` off in Symfony production config.
"""

from __future__ import annotations

from repodoctor.core.analyzers.symfony import DEBUG_TRUE_PATTERN
from repodoctor.core.project import Project
from repodoctor.engine.fixers.base import Fixer
from repodoctor.models.fix_models import FixAction, FixActionKind
from repodoctor.models.issue_models import Issue


def disable_debug(text: str) -> str:
    return "".join(
        DEBUG_TRUE_PATTERN.sub(r"\1false", line) for line in text.splitlines(keepends=True)
    )


class DebugFlagFixer(Fixer):
    name = "debug_flag"
    handles = ("SYM-013",)

    def plan(self, issue: Issue, project: Project) -> FixAction | None:
        if issue.file is None:
            return None
        text = project.snapshot.read_exact(issue.file)
        if text is None:
            return None
        rewritten = disable_debug(text)
        if rewritten == text:
            return None
        return self.action(
            issue,
            FixActionKind.WRITE_FILE,
            issue.file,
            f"Set debug: false in {issue.file}",
            content=rewritten,
        )
