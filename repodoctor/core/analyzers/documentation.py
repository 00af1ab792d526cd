"""
Documentation Analyzer — README quality and community files.
"""

from __future__ import annotations

from repodoctor.core.analyzers.base import Analyzer, CancelToken, catalog
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.ruleset_models import EffectiveRuleset

README_SECTIONS = [
    ("DOC-002", "install", "Installation"),
    ("DOC-006", "usage", "Usage"),
]

MIN_LICENSE_CHARS = 50


class DocumentationAnalyzer(Analyzer):
    name = "documentation"
    description = "Checks documentation quality and completeness"
    category = Category.DOCUMENTATION
    rules = catalog(
        Rule(id="DOC-001", severity=Severity.MEDIUM, title="README.md is too short"),
        Rule(id="DOC-002", severity=Severity.LOW, title="README.md missing Installation section"),
        Rule(id="DOC-003", severity=Severity.INFO, title="Missing CONTRIBUTING.md"),
        Rule(id="DOC-004", severity=Severity.MEDIUM, title="LICENSE file appears incomplete"),
        Rule(id="DOC-005", severity=Severity.INFO, title="Missing CODE_OF_CONDUCT.md"),
        Rule(id="DOC-006", severity=Severity.LOW, title="README.md missing Usage section"),
    )

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []

        readme = snapshot.read_text("README.md")
        if readme is not None:
            min_lines = int(self.param(ruleset, "min_readme_lines", 5))
            if len(readme.splitlines()) < min_lines:
                issues.append(
                    self.issue(
                        "DOC-001",
                        "A good README should have at least a description, installation "
                        "instructions, and usage examples.",
                        file="README.md",
                        suggestion="Add sections: Description, Installation, Usage",
                    )
                )
            else:
                lowered = readme.lower()
                for rule_id, keyword, section in README_SECTIONS:
                    if keyword not in lowered:
                        issues.append(
                            self.issue(
                                rule_id,
                                f"Consider adding a {section} section to help users get started.",
                                file="README.md",
                                suggestion=f"Add a ## {section} section",
                            )
                        )

        if not snapshot.is_file("CONTRIBUTING.md"):
            issues.append(
                self.issue(
                    "DOC-003",
                    "A CONTRIBUTING.md helps new contributors understand how to participate.",
                    suggestion="Create a CONTRIBUTING.md with guidelines for contributors",
                )
            )

        license_file = next((f for f in ("LICENSE", "LICENSE.md") if snapshot.is_file(f)), None)
        if license_file is not None:
            text = snapshot.read_text(license_file)
            if text is not None and len(text.strip()) < MIN_LICENSE_CHARS:
                issues.append(
                    self.issue(
                        "DOC-004",
                        "The LICENSE file exists but has very little content.",
                        file=license_file,
                        suggestion="Add a proper license text (MIT, Apache 2.0, etc.)",
                    )
                )

        if not snapshot.is_file("CODE_OF_CONDUCT.md"):
            issues.append(
                self.issue(
                    "DOC-005",
                    "A code of conduct sets expectations for community behavior.",
                    suggestion="Add a CODE_OF_CONDUCT.md (e.g., Contributor Covenant)",
                )
            )

        return issues
