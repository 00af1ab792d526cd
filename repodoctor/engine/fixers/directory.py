"""
Directory Fixer — Creates missing conventional directories.
"""

from __future__ import annotations

from repodoctor.core.project import Project
from repodoctor.engine.fixers.base import Fixer
from repodoctor.models.fix_models import FixAction, FixActionKind
from repodoctor.models.issue_models import Issue


class DirectoryFixer(Fixer):
    name = "directory"
    handles = (
        "STR-001", "SYM-001", "SYM-002", "SYM-031", "LAR-001", "LAR-002", "LAR-003", "LAR-031",
        "FLT-031", "NJS-031", "RST-020",
    )

    def plan(self, issue: Issue, project: Project) -> FixAction | None:
        directory = str(issue.metadata.get("directory") or "").strip("/")
        if not directory or project.snapshot.is_dir(directory):
            return None
        return self.action(
            issue,
            FixActionKind.CREATE_DIRECTORY,
            directory,
            f"Create directory {directory}/",
        )
