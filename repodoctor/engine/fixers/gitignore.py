"""
Gitignore Fixer — Creates a framework .gitignore or appends missing entries.
"""

from __future__ import annotations

from repodoctor.config import settings
from repodoctor.core.project import Project
from repodoctor.engine.fixers.base import Fixer, append_lines
from repodoctor.models.fix_models import FixAction, FixActionKind
from repodoctor.models.issue_models import Issue
from repodoctor.models.project_models import Framework

GITIGNORE_TEMPLATES: dict[Framework, str] = {
    Framework.SYMFONY: "vendor/\nvar/\n.env\n.env.local\n",
    Framework.LARAVEL: "vendor/\nnode_modules/\n.env\nstorage/*.key\n",
    Framework.FLUTTER: "build/\n.dart_tool/\n.flutter-plugins\n.flutter-plugins-dependencies\n",
    Framework.NEXTJS: ".next/\nnode_modules/\n.env.local\n.env*.local\n",
    Framework.RUST_CARGO: "target/\n",
    Framework.NODEJS: "node_modules/\ndist/\n.env\n*.log\n",
    Framework.PYTHON: "__pycache__/\n*.py[cod]\n.venv/\ndist/\nbuild/\n.env\n",
}
DEFAULT_TEMPLATE = ".env\n*.log\n.DS_Store\n"


def gitignore_template(framework: Framework) -> str:
    """Framework template plus the scan cache file RepoDoctor writes into the repository."""
    return append_lines(GITIGNORE_TEMPLATES.get(framework, DEFAULT_TEMPLATE), [settings.cache_filename])


# Used when an issue carries no explicit entries
DEFAULT_ENTRIES: dict[str, list[str]] = {
    "CFG-003": [".env"],
    "SEC-003": [".env"],
    "NJS-050": [".env*.local"],
}


class GitignoreFixer(Fixer):
    name = "gitignore"
    handles = ("STR-003", "CFG-003", "SEC-003", "SYM-050", "LAR-050", "FLT-053", "NJS-050", "RST-040")

    def plan(self, issue: Issue, project: Project) -> FixAction | None:
        if issue.id == "STR-003":
            if project.snapshot.exists(".gitignore"):
                return None
            framework = Framework(issue.metadata.get("framework", project.framework.value))
            return self.action(
                issue,
                FixActionKind.CREATE_FILE,
                ".gitignore",
                f"Create .gitignore with {framework.display_name} template",
                content=gitignore_template(framework),
            )

        entries = [str(e) for e in issue.metadata.get("entries") or DEFAULT_ENTRIES.get(issue.id, [])]
        if not entries:
            return None
        return self.action(
            issue,
            FixActionKind.APPEND_LINES,
            ".gitignore",
            f"Append to .gitignore: {', '.join(entries)}",
            lines=entries,
        )
