"""
Generic Analyzer — Baseline hygiene for repositories with no recognised framework.
"""

from __future__ import annotations

from repodoctor.core.analyzers.base import Analyzer, CancelToken, catalog
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.project_models import Framework
from repodoctor.models.ruleset_models import EffectiveRuleset

CHANGELOG_FILES = ("CHANGELOG.md", "CHANGELOG", "HISTORY.md")


class GenericAnalyzer(Analyzer):
    name = "generic"
    description = "Baseline checks for projects without a recognised framework"
    category = Category.CONFIGURATION
    rules = catalog(
        Rule(id="GEN-001", severity=Severity.INFO, title="No recognised project manifest", category=Category.STRUCTURE),
        Rule(id="GEN-002", severity=Severity.LOW, title="No CI configuration found", category=Category.CONFIGURATION),
        Rule(id="GEN-003", severity=Severity.INFO, title="Missing CHANGELOG", category=Category.DOCUMENTATION),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.GENERIC

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        issues = [
            self.issue(
                "GEN-001",
                "No package.json, Cargo.toml, composer.json, pubspec.yaml or Python "
                "manifest was found. Framework-specific checks were skipped.",
                suggestion="Add the manifest for your toolchain so dependencies are declared",
            )
        ]
        if project.detected.ci_provider is None:
            issues.append(
                self.issue(
                    "GEN-002",
                    "No CI configuration (GitHub Actions, GitLab CI, CircleCI, ...) was found.",
                    suggestion="Add a CI workflow that runs the build and tests on every push",
                )
            )
        if not project.snapshot.any_exists(*CHANGELOG_FILES):
            issues.append(
                self.issue(
                    "GEN-003",
                    "A changelog tells users what changed between releases.",
                    suggestion="Create a CHANGELOG.md (see keepachangelog.com)",
                )
            )
        return issues
