"""
Rust/Cargo Analyzer — Cargo project layout, tooling config and unsafe code.
"""

from __future__ import annotations

import re

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

S, C, T, X = (
    Category.STRUCTURE,
    Category.CONFIGURATION,
    Category.TESTING,
    Category.SECURITY,
)

_UNSAFE_BLOCK = re.compile(r"\bunsafe\s*\{")


class RustCargoAnalyzer(Analyzer):
    name = "rust_cargo"
    description = "Rust/Cargo-specific project structure, configuration, and best practices"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="RST-001", severity=Severity.HIGH, title="Missing src/main.rs or src/lib.rs", category=S, auto_fixable=True),
        Rule(id="RST-002", severity=Severity.LOW, title="Missing clippy configuration", category=C),
        Rule(id="RST-003", severity=Severity.LOW, title="Missing rustfmt configuration", category=C),
        Rule(id="RST-010", severity=Severity.MEDIUM, title="Outdated or missing Rust edition", category=C),
        Rule(id="RST-011", severity=Severity.MEDIUM, title="Missing Cargo.lock for binary crate", category=C),
        Rule(id="RST-020", severity=Severity.MEDIUM, title="No integration tests directory", category=T, auto_fixable=True),
        Rule(id="RST-030", severity=Severity.HIGH, title="Unsafe code block", category=X),
        Rule(id="RST-040", severity=Severity.MEDIUM, title=".gitignore missing: target/", category=S, auto_fixable=True),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.RUST_CARGO

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        min_edition = int(self.param(ruleset, "min_edition", 2021))
        issues: list[Issue] = []

        # ── Structure ──
        has_main = snapshot.is_file("src/main.rs")
        if not has_main and not snapshot.is_file("src/lib.rs"):
            issues.append(
                self.issue(
                    "RST-001",
                    "Rust projects need either src/main.rs (binary) or src/lib.rs (library) "
                    "as an entry point.",
                    suggestion="Create src/main.rs for a binary crate or src/lib.rs for a library crate",
                )
            )
        if not snapshot.any_exists("clippy.toml", ".clippy.toml"):
            issues.append(
                self.issue(
                    "RST-002",
                    "No clippy.toml or .clippy.toml found. Clippy configuration keeps lint rules consistent.",
                    suggestion="Create clippy.toml to configure Clippy lints for your project",
                )
            )
        if not snapshot.any_exists("rustfmt.toml", ".rustfmt.toml"):
            issues.append(
                self.issue(
                    "RST-003",
                    "No rustfmt.toml or .rustfmt.toml found.",
                    suggestion="Create rustfmt.toml to configure code formatting rules",
                )
            )

        # ── Configuration ──
        issues.extend(self._check_edition(snapshot.document("Cargo.toml"), min_edition))
        if has_main and not snapshot.is_file("Cargo.lock"):
            issues.append(
                self.issue(
                    "RST-011",
                    "Binary crates should commit Cargo.lock for reproducible builds.",
                    suggestion="Run `cargo build` and commit the generated Cargo.lock",
                )
            )

        # ── Testing ──
        if not snapshot.is_dir("tests"):
            issues.append(
                self.issue(
                    "RST-020",
                    "No tests/ directory found. Consider adding integration tests.",
                    suggestion="Create a tests/ directory for integration tests",
                    metadata={"directory": "tests"},
                )
            )

        # ── Security ──
        for rel in snapshot.iter_files(under="src", extensions=["rs"]):
            cancel.check()
            text = snapshot.read_text(rel) or ""
            for line_num, line in enumerate(text.splitlines(), start=1):
                if _UNSAFE_BLOCK.search(line):
                    issues.append(
                        self.issue(
                            "RST-030",
                            f"unsafe block found in {rel}. Ensure unsafe code is justified and reviewed.",
                            file=rel,
                            line=line_num,
                            suggestion="Review unsafe code for soundness or replace it with safe alternatives",
                        )
                    )
                    # One issue per file
                    break

        # ── Best practices ──
        gitignore = gitignore_lines(project)
        if gitignore is not None and not gitignore_covers(gitignore, "target/"):
            issues.append(
                self.issue(
                    "RST-040",
                    ".gitignore should include target/ for Rust projects.",
                    file=".gitignore",
                    suggestion="Add target/ to .gitignore",
                    metadata={"entries": ["target/"]},
                )
            )

        return issues

    def _check_edition(self, manifest, min_edition: int) -> list[Issue]:
        if not isinstance(manifest, dict) or not isinstance(manifest.get("package"), dict):
            return []
        edition = manifest["package"].get("edition")
        if edition is None:
            return [
                self.issue(
                    "RST-010",
                    "No edition specified in Cargo.toml. Without it, the 2015 edition is used.",
                    title="Missing Rust edition in Cargo.toml",
                    file="Cargo.toml",
                    suggestion=f'Add edition = "{min_edition}" to [package] in Cargo.toml',
                )
            ]
        # edition.workspace = true inherits from the workspace root
        if isinstance(edition, str) and edition.isdigit() and int(edition) < min_edition:
            return [
                self.issue(
                    "RST-010",
                    f"Cargo.toml specifies edition {edition}. Consider upgrading to {min_edition} or later.",
                    title=f"Outdated Rust edition ({edition})",
                    file="Cargo.toml",
                    suggestion=f'Update edition to "{min_edition}" in Cargo.toml',
                )
            ]
        return []
