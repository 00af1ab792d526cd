"""
Dependencies Analyzer — Lock files, manifest hygiene and dependency counts.

Only runs when the detector found a package manager; manifests come from the
documents the snapshot already parsed.
"""

from __future__ import annotations

import re

from repodoctor.core.analyzers.base import Analyzer, CancelToken, catalog
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.project_models import Framework, PackageManager
from repodoctor.models.ruleset_models import EffectiveRuleset

NODE_LOCK_FILES = ("package-lock.json", "yarn.lock", "pnpm-lock.yaml")

NODE_DEV_PREFIXES = (
    "eslint",
    "@types/",
    "prettier",
    "jest",
    "mocha",
    "chai",
    "typescript",
    "ts-node",
    "nodemon",
    "webpack",
    "babel",
    "@babel/",
    "rollup",
    "vite",
)

PHP_DEV_PREFIXES = (
    "phpunit/",
    "phpstan/",
    "squizlabs/",
    "friendsofphp/",
    "vimeo/psalm",
    "mockery/",
    "fakerphp/",
)

_REQUIREMENT_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*")


class DependenciesAnalyzer(Analyzer):
    name = "dependencies"
    description = "Checks dependency management, lock files, and dependency hygiene"
    category = Category.DEPENDENCIES
    rules = catalog(
        Rule(id="DEP-001", severity=Severity.HIGH, title="Missing lock file"),
        Rule(id="DEP-002", severity=Severity.INFO, title="No dependencies declared"),
        Rule(id="DEP-003", severity=Severity.MEDIUM, title="Dev dependencies in production section"),
        Rule(id="DEP-004", severity=Severity.MEDIUM, title="Unpinned dependency versions"),
        Rule(id="DEP-005", severity=Severity.LOW, title="Too many direct dependencies"),
    )

    def applies_to(self, project: Project) -> bool:
        return project.detected.package_manager is not None

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        max_direct = int(self.param(ruleset, "max_direct", 50))
        framework = project.framework
        if framework is Framework.RUST_CARGO:
            return self._check_cargo(project, max_direct)
        if framework in (Framework.NODEJS, Framework.NEXTJS):
            return self._check_node(project, max_direct)
        if framework in (Framework.SYMFONY, Framework.LARAVEL):
            return self._check_composer(project, max_direct)
        if framework is Framework.FLUTTER:
            return self._check_pub(project)
        if framework is Framework.PYTHON:
            return self._check_python(project, max_direct)
        return []

    # ── Ecosystems ──

    def _check_cargo(self, project: Project, max_direct: int) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []
        if not snapshot.is_file("Cargo.lock"):
            issues.append(
                self._missing_lock("Cargo.lock", "Run `cargo build` to generate Cargo.lock")
            )
        manifest = snapshot.document("Cargo.toml")
        if isinstance(manifest, dict):
            deps = manifest.get("dependencies") or {}
            issues.extend(self._count_issues(len(deps), max_direct, "Cargo.toml", "[dependencies]"))
        return issues

    def _check_node(self, project: Project, max_direct: int) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []
        if not snapshot.any_exists(*NODE_LOCK_FILES):
            issues.append(
                self.issue(
                    "DEP-001",
                    "No package-lock.json, yarn.lock, or pnpm-lock.yaml found.",
                    suggestion="Run `npm install` to generate a lock file",
                )
            )
        pkg = snapshot.document("package.json")
        if not isinstance(pkg, dict):
            return issues
        deps = pkg.get("dependencies") if isinstance(pkg.get("dependencies"), dict) else {}
        dev = pkg.get("devDependencies") if isinstance(pkg.get("devDependencies"), dict) else {}
        if not deps and not dev:
            issues.append(
                self.issue(
                    "DEP-002",
                    "package.json has no dependencies or devDependencies.",
                    file="package.json",
                )
            )
        misplaced = [name for name in deps if name.lower().startswith(NODE_DEV_PREFIXES)]
        if misplaced:
            issues.append(
                self._dev_in_prod(misplaced, "package.json", "dependencies", "devDependencies")
            )
        issues.extend(self._too_many(len(deps), max_direct, "package.json"))
        return issues

    def _check_composer(self, project: Project, max_direct: int) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []
        if not snapshot.is_file("composer.lock"):
            issues.append(
                self._missing_lock(
                    "composer.lock", "Run `composer install` to generate composer.lock"
                )
            )
        composer = snapshot.document("composer.json")
        if not isinstance(composer, dict):
            return issues
        require = composer.get("require") if isinstance(composer.get("require"), dict) else {}
        require_dev = (
            composer.get("require-dev") if isinstance(composer.get("require-dev"), dict) else {}
        )
        if not require and not require_dev:
            issues.append(
                self.issue(
                    "DEP-002",
                    "composer.json has no require or require-dev entries.",
                    file="composer.json",
                )
            )
        misplaced = [name for name in require if name.lower().startswith(PHP_DEV_PREFIXES)]
        if misplaced:
            issues.append(self._dev_in_prod(misplaced, "composer.json", "require", "require-dev"))
        issues.extend(self._too_many(len(require), max_direct, "composer.json"))
        return issues

    def _check_pub(self, project: Project) -> list[Issue]:
        if project.snapshot.is_file("pubspec.lock"):
            return []
        return [
            self._missing_lock("pubspec.lock", "Run `flutter pub get` to generate pubspec.lock")
        ]

    def _check_python(self, project: Project, max_direct: int) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []
        has_requirements = snapshot.is_file("requirements.txt")
        pyproject = snapshot.document("pyproject.toml")

        if not has_requirements and not snapshot.is_file("pyproject.toml"):
            issues.append(self.issue("DEP-002", "No requirements.txt or pyproject.toml found."))

        if project.detected.package_manager is PackageManager.POETRY and not snapshot.is_file(
            "poetry.lock"
        ):
            issues.append(self._missing_lock("poetry.lock", "Run `poetry lock` to generate poetry.lock"))

        direct = 0
        if has_requirements:
            requirements = _requirement_lines(snapshot.read_text("requirements.txt") or "")
            direct = len(requirements)
            unpinned = [req for req in requirements if "==" not in req and "@" not in req]
            if unpinned:
                issues.append(
                    self.issue(
                        "DEP-004",
                        "These dependencies lack pinned versions (==): " + ", ".join(unpinned),
                        file="requirements.txt",
                        suggestion="Pin versions with == for reproducible builds (e.g., requests==2.28.0)",
                        metadata={"packages": unpinned},
                    )
                )
        elif isinstance(pyproject, dict):
            declared = (pyproject.get("project") or {}).get("dependencies")
            if declared is None:
                poetry = (pyproject.get("tool") or {}).get("poetry") or {}
                declared = [k for k in (poetry.get("dependencies") or {}) if k != "python"]
            direct = len(declared or [])

        issues.extend(self._too_many(direct, max_direct, "requirements.txt" if has_requirements else "pyproject.toml"))
        return issues

    # ── Builders ──

    def _missing_lock(self, lock_file: str, suggestion: str) -> Issue:
        return self.issue(
            "DEP-001",
            f"No {lock_file} found. Lock files ensure reproducible builds.",
            title=f"Missing {lock_file}",
            suggestion=suggestion,
        )

    def _dev_in_prod(self, names: list[str], manifest: str, section: str, dev_section: str) -> Issue:
        return self.issue(
            "DEP-003",
            f"These packages are likely {dev_section} but are listed in {section}: "
            + ", ".join(names),
            file=manifest,
            suggestion=f"Move development-only packages to {dev_section}",
            metadata={"packages": names},
        )

    def _count_issues(self, count: int, max_direct: int, manifest: str, section: str) -> list[Issue]:
        if count == 0:
            return [self.issue("DEP-002", f"{manifest} has no {section} entries.", file=manifest)]
        return self._too_many(count, max_direct, manifest)

    def _too_many(self, count: int, max_direct: int, manifest: str) -> list[Issue]:
        if count <= max_direct:
            return []
        return [
            self.issue(
                "DEP-005",
                f"{manifest} declares {count} direct dependencies (limit {max_direct}).",
                title=f"Too many direct dependencies ({count})",
                file=manifest,
                suggestion="Review dependencies and remove unused ones",
            )
        ]


def _requirement_lines(text: str) -> list[str]:
    """Requirement specifiers, skipping comments, options and blank lines."""
    out = []
    for line in text.splitlines():
        stripped = line.split("#", 1)[0].strip()
        if not stripped or stripped.startswith("-"):
            continue
        if _REQUIREMENT_NAME.match(stripped):
            out.append(stripped)
    return out
