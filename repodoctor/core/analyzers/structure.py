"""
Structure Analyzer — Directory layout and essential repository files.
"""

from __future__ import annotations

from repodoctor.core.analyzers.base import (
    Analyzer,
    CancelToken,
    catalog,
    gitignore_covers,
    gitignore_lines,
)
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.project_models import Framework
from repodoctor.models.ruleset_models import EffectiveRuleset

REQUIRED_DIRS: dict[Framework, list[str]] = {
    Framework.SYMFONY: ["src", "config", "templates"],
    Framework.LARAVEL: ["app", "config", "resources", "routes"],
    Framework.FLUTTER: ["lib", "test"],
    Framework.NEXTJS: ["public"],
    Framework.RUST_CARGO: ["src"],
    Framework.NODEJS: ["src"],
    Framework.PYTHON: [],
    Framework.GENERIC: [],
}

# Paths that must never be committed, unless .gitignore already covers them
FORBIDDEN_PATHS = ["node_modules", ".env", "dist/credentials"]

LICENSE_FILES = ("LICENSE", "LICENSE.md", "LICENSE.txt")


class StructureAnalyzer(Analyzer):
    name = "structure"
    description = "Analyzes project directory structure and essential files"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="STR-001", severity=Severity.HIGH, title="Missing required directory", auto_fixable=True),
        Rule(id="STR-002", severity=Severity.MEDIUM, title="Missing README.md"),
        Rule(id="STR-003", severity=Severity.MEDIUM, title="Missing .gitignore", auto_fixable=True),
        Rule(id="STR-004", severity=Severity.LOW, title="Missing LICENSE file"),
        Rule(id="STR-005", severity=Severity.MEDIUM, title="Excessive directory depth"),
        Rule(id="STR-006", severity=Severity.CRITICAL, title="Forbidden path found"),
    )

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        framework = project.framework
        issues: list[Issue] = []

        for directory in REQUIRED_DIRS.get(framework, []):
            if not snapshot.is_dir(directory):
                issues.append(
                    self.issue(
                        "STR-001",
                        f"The '{directory}' directory is expected for "
                        f"{framework.display_name} projects.",
                        title=f"Missing required directory: {directory}",
                        suggestion=f"Create the '{directory}' directory",
                        metadata={"directory": directory},
                    )
                )

        if not snapshot.is_file("README.md"):
            issues.append(
                self.issue(
                    "STR-002",
                    "A README.md file is essential for project documentation.",
                    suggestion="Create a README.md with project description and usage instructions",
                )
            )

        gitignore = gitignore_lines(project)
        if gitignore is None:
            issues.append(
                self.issue(
                    "STR-003",
                    "A .gitignore file prevents committing unwanted files.",
                    file=".gitignore",
                    suggestion="Create a .gitignore appropriate for your framework",
                    metadata={"framework": framework.value},
                )
            )

        if not snapshot.any_exists(*LICENSE_FILES):
            issues.append(
                self.issue(
                    "STR-004",
                    "A LICENSE file clarifies how others can use your code.",
                    suggestion="Add a LICENSE file (MIT, Apache-2.0, etc.)",
                )
            )

        cancel.check()
        max_depth = int(self.param(ruleset, "max_depth", 8))
        depth = snapshot.max_depth()
        if depth > max_depth:
            issues.append(
                self.issue(
                    "STR-005",
                    "Deep nesting makes code harder to navigate and maintain.",
                    title=f"Excessive directory depth: {depth}",
                    suggestion=(
                        "Consider flattening your directory structure "
                        f"(max recommended: {max_depth} levels)"
                    ),
                    metadata={"depth": depth, "max_depth": max_depth},
                )
            )

        for forbidden in FORBIDDEN_PATHS:
            if not snapshot.exists(forbidden):
                continue
            if gitignore is not None and gitignore_covers(gitignore, forbidden, f"{forbidden}*"):
                continue
            issues.append(
                self.issue(
                    "STR-006",
                    f"The path '{forbidden}' should not be in the repository.",
                    title=f"Forbidden path found: {forbidden}",
                    file=forbidden,
                    suggestion=f"Remove '{forbidden}' and add it to .gitignore",
                )
            )

        return issues
