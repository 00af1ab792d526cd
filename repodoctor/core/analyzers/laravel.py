"""
Laravel Analyzer — Laravel-specific structure, configuration and best practices.
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

S, D, C, T, X = (
    Category.STRUCTURE,
    Category.DEPENDENCIES,
    Category.CONFIGURATION,
    Category.TESTING,
    Category.SECURITY,
)

PLACEHOLDER_APP_KEYS = {"", "base64:", "SomeRandomString"}

DEV_ONLY_PACKAGES = (
    "phpunit/phpunit",
    "fakerphp/faker",
    "mockery/mockery",
    "laravel/sail",
    "laravel/pint",
)

# Framework caches and compiled views
_SKIPPED_PREFIXES = ("storage/", "var/")

_EXTENDS_MODEL = re.compile(r"extends\s+Model\b")
_MASS_ASSIGNMENT_GUARD = re.compile(r"\$(fillable|guarded)\s*=")
_RAW_SQL = re.compile(r"(DB::raw\(|->whereRaw\(|->selectRaw\()")


class LaravelAnalyzer(Analyzer):
    name = "laravel"
    description = "Laravel-specific project structure, configuration, and best practices"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="LAR-001", severity=Severity.HIGH, title="Missing app/Http/Controllers/ directory", category=S, auto_fixable=True),
        Rule(id="LAR-002", severity=Severity.MEDIUM, title="Missing routes/ directory", category=S, auto_fixable=True),
        Rule(id="LAR-003", severity=Severity.MEDIUM, title="Missing resources/views/ directory", category=S, auto_fixable=True),
        Rule(id="LAR-010", severity=Severity.CRITICAL, title="Empty or default APP_KEY", category=C),
        Rule(id="LAR-011", severity=Severity.HIGH, title="APP_DEBUG enabled in .env", category=C),
        Rule(id="LAR-020", severity=Severity.MEDIUM, title="Dev package in require", category=D),
        Rule(id="LAR-030", severity=Severity.HIGH, title="Missing PHPUnit configuration", category=T),
        Rule(id="LAR-031", severity=Severity.HIGH, title="Missing tests/ directory", category=T, auto_fixable=True),
        Rule(id="LAR-040", severity=Severity.HIGH, title="Model without mass assignment protection", category=X),
        Rule(id="LAR-041", severity=Severity.HIGH, title="Raw SQL query", category=X),
        Rule(id="LAR-050", severity=Severity.MEDIUM, title=".gitignore missing Laravel entries", category=S, auto_fixable=True),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.LARAVEL

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        issues: list[Issue] = []

        # ── Structure ──
        for rule_id, directory, hint in (
            ("LAR-001", "app/Http/Controllers", "HTTP controllers"),
            ("LAR-002", "routes", "route definitions"),
            ("LAR-003", "resources/views", "Blade templates"),
        ):
            if not snapshot.is_dir(directory):
                issues.append(
                    self.issue(
                        rule_id,
                        f"Laravel projects should have a {directory}/ directory for {hint}.",
                        suggestion=f"Create {directory}/",
                        metadata={"directory": directory},
                    )
                )

        # ── Configuration ──
        env = snapshot.read_text(".env") or ""
        issues.extend(self._check_env(env))

        # ── Dependencies ──
        composer = snapshot.document("composer.json")
        require = composer.get("require") if isinstance(composer, dict) else None
        if isinstance(require, dict):
            for package in DEV_ONLY_PACKAGES:
                if package in require:
                    issues.append(
                        self.issue(
                            "LAR-020",
                            f"{package} is a development tool and belongs in require-dev.",
                            title=f"Dev package in require: {package}",
                            file="composer.json",
                            suggestion=f"Run `composer remove {package} && composer require --dev {package}`",
                        )
                    )
                    # Report once per project
                    break

        # ── Testing ──
        if not snapshot.any_exists("phpunit.xml", "phpunit.xml.dist"):
            issues.append(
                self.issue(
                    "LAR-030",
                    "No phpunit.xml or phpunit.xml.dist found.",
                    suggestion="Create phpunit.xml with your test suites",
                )
            )
        if not snapshot.is_dir("tests"):
            issues.append(
                self.issue(
                    "LAR-031",
                    "No tests/ directory found. Laravel projects should have Feature and Unit tests.",
                    suggestion="Create tests/ and run `php artisan make:test`",
                    metadata={"directory": "tests"},
                )
            )

        # ── Security ──
        for rel in snapshot.iter_files(under="app/Models", extensions=["php"]):
            cancel.check()
            text = snapshot.read_text(rel) or ""
            if _EXTENDS_MODEL.search(text) and not _MASS_ASSIGNMENT_GUARD.search(text):
                issues.append(
                    self.issue(
                        "LAR-040",
                        f"{rel} extends Model without $fillable or $guarded, "
                        "which leaves it open to mass assignment.",
                        file=rel,
                        suggestion="Declare protected $fillable with the assignable attributes",
                    )
                )
        for rel in snapshot.iter_files(extensions=["php"]):
            if rel.startswith(_SKIPPED_PREFIXES):
                continue
            cancel.check()
            text = snapshot.read_text(rel) or ""
            for line_num, line in enumerate(text.splitlines(), start=1):
                if _RAW_SQL.search(line):
                    issues.append(
                        self.issue(
                            "LAR-041",
                            f"Raw SQL expression in {rel}. Unescaped input here allows SQL injection.",
                            file=rel,
                            line=line_num,
                            suggestion="Use query builder bindings or Eloquent methods instead of raw SQL",
                        )
                    )
                    # One issue per file
                    break

        # ── Best practices ──
        gitignore = gitignore_lines(project)
        if gitignore is not None:
            missing = [e for e in ("vendor/", ".env") if not gitignore_covers(gitignore, e)]
            if missing:
                issues.append(
                    self.issue(
                        "LAR-050",
                        f".gitignore should include {' and '.join(missing)} for Laravel projects.",
                        title=f".gitignore missing: {', '.join(missing)}",
                        file=".gitignore",
                        suggestion=f"Add {' and '.join(missing)} to .gitignore",
                        metadata={"entries": missing},
                    )
                )

        return issues

    def _check_env(self, env: str) -> list[Issue]:
        issues: list[Issue] = []
        key_seen = debug_seen = False
        for line_num, line in enumerate(env.splitlines(), start=1):
            stripped = line.strip()
            if stripped.startswith("APP_KEY=") and not key_seen:
                key_seen = True
                value = stripped.removeprefix("APP_KEY=").strip().strip("\"'")
                if value in PLACEHOLDER_APP_KEYS:
                    issues.append(
                        self.issue(
                            "LAR-010",
                            "APP_KEY in .env is empty or a placeholder; encrypted data and "
                            "sessions are not protected.",
                            file=".env",
                            line=line_num,
                            suggestion="Run `php artisan key:generate`",
                        )
                    )
            elif stripped.startswith("APP_DEBUG=") and not debug_seen:
                debug_seen = True
                value = stripped.removeprefix("APP_DEBUG=").strip().strip("\"'")
                if value.lower() == "true":
                    issues.append(
                        self.issue(
                            "LAR-011",
                            "APP_DEBUG=true exposes stack traces and environment details.",
                            file=".env",
                            line=line_num,
                            suggestion="Set APP_DEBUG=false outside local development",
                        )
                    )
        return issues
