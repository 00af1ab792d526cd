"""
EditorConfig Fixer — Writes a baseline .editorconfig.
"""

from __future__ import annotations

from repodoctor.core.project import Project
from repodoctor.engine.fixers.base import Fixer
from repodoctor.models.fix_models import FixAction, FixActionKind
from repodoctor.models.issue_models import Issue

EDITORCONFIG_TEMPLATE = """root = true

[*]
indent_style = space
indent_size = 4
end_of_line = lf
charset = utf-8
trim_trailing_whitespace = true
insert_final_newline = true
"""


class EditorConfigFixer(Fixer):
    name = "editorconfig"
    handles = ("CFG-002",)

    def plan(self, issue: Issue, project: Project) -> FixAction | None:
        if project.snapshot.exists(".editorconfig"):
            return None
        return self.action(
            issue,
            FixActionKind.CREATE_FILE,
            ".editorconfig",
            "Create .editorconfig with standard settings",
            content=EDITORCONFIG_TEMPLATE,
        )
