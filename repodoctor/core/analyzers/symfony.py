"""
Symfony Analyzer — Symfony-specific structure, configuration and best practices.

Rules span several categories; each catalog entry carries its own.
"""

from __future__ import annotations

import re

from repodoctor.core.analyzers.base import (
    Analyzer,
    CancelToken,
    catalog,
    gitignore_covers,
    gitignore_lines,
    parse_major_version,
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

KNOWN_DEFAULT_SECRETS = {
    "change_me",
    "your_app_secret",
    "thistokenisnotsosecretchangeit",
    "somedefaultsecret",
}

PHPUNIT_PACKAGES = ("phpunit/phpunit", "symfony/phpunit-bridge")

_DB_CREDENTIALS = re.compile(r"DATABASE_URL\s*=\s*\S+://\w+:.+@")
_UNSERIALIZE = re.compile(r"\bunserialize\s*\(")
DEBUG_TRUE_PATTERN = re.compile(r"^(\s*debug\s*:\s*)true\b")


class SymfonyAnalyzer(Analyzer):
    name = "symfony"
    description = "Symfony-specific project structure, configuration, and best practices"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="SYM-001", severity=Severity.HIGH, title="Missing src/Controller/ directory", category=S, auto_fixable=True),
        Rule(id="SYM-002", severity=Severity.MEDIUM, title="Missing src/Entity/ directory", category=S, auto_fixable=True),
        Rule(id="SYM-003", severity=Severity.MEDIUM, title="Controller outside src/Controller/", category=S),
        Rule(id="SYM-004", severity=Severity.LOW, title="Service outside src/Service/", category=S),
        Rule(id="SYM-012", severity=Severity.CRITICAL, title="Weak or default APP_SECRET", category=C),
        Rule(id="SYM-013", severity=Severity.CRITICAL, title="Debug enabled in production config", category=C, auto_fixable=True),
        Rule(id="SYM-020", severity=Severity.HIGH, title="Outdated Symfony package", category=D),
        Rule(id="SYM-022", severity=Severity.LOW, title="Missing symfony/runtime", category=D),
        Rule(id="SYM-030", severity=Severity.MEDIUM, title="Missing PHPUnit configuration", category=T),
        Rule(id="SYM-031", severity=Severity.HIGH, title="Missing tests/ directory", category=T, auto_fixable=True),
        Rule(id="SYM-032", severity=Severity.HIGH, title="Missing PHPUnit dependency", category=T),
        Rule(id="SYM-040", severity=Severity.CRITICAL, title="Hardcoded database credentials in .env", category=X),
        Rule(id="SYM-041", severity=Severity.MEDIUM, title="Missing CORS bundle", category=X),
        Rule(id="SYM-042", severity=Severity.CRITICAL, title="Unsafe unserialize() call", category=X),
        Rule(id="SYM-050", severity=Severity.MEDIUM, title=".gitignore missing Symfony entries", category=S, auto_fixable=True),
        Rule(id="SYM-052", severity=Severity.INFO, title="Missing rector.php", category=C),
        Rule(id="SYM-053", severity=Severity.MEDIUM, title="Missing PHPStan configuration", category=C),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.SYMFONY

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        composer = snapshot.document("composer.json")
        require = _section(composer, "require")
        require_dev = _section(composer, "require-dev")
        issues: list[Issue] = []

        # ── Structure ──
        for rule_id, directory, hint in (
            ("SYM-001", "src/Controller", "HTTP controllers"),
            ("SYM-002", "src/Entity", "Doctrine entity classes"),
        ):
            if not snapshot.is_dir(directory):
                issues.append(
                    self.issue(
                        rule_id,
                        f"Symfony projects should have a {directory}/ directory for {hint}.",
                        suggestion=f"Create {directory}/",
                        metadata={"directory": directory},
                    )
                )
        issues.extend(self._misplaced(project, "SYM-003", "Controller.php", "src/Controller/"))
        issues.extend(self._misplaced(project, "SYM-004", "Service.php", "src/Service/"))

        # ── Configuration ──
        cancel.check()
        env = snapshot.read_text(".env") or ""
        issues.extend(self._check_app_secret(env))
        issues.extend(self._check_prod_debug(project, cancel))

        # ── Dependencies ──
        if composer is not None:
            for package, constraint in sorted(require.items()):
                major = parse_major_version(constraint)
                if package.startswith("symfony/") and major is not None and major < 6:
                    issues.append(
                        self.issue(
                            "SYM-020",
                            f"{package} requires version {constraint} which is below Symfony 6. "
                            "Consider upgrading.",
                            title=f"Outdated Symfony package: {package} (v{major})",
                            file="composer.json",
                            suggestion="Upgrade to Symfony 6+ for long-term support and security fixes",
                        )
                    )
                    # Report once per project
                    break
            if "symfony/runtime" not in require:
                issues.append(
                    self.issue(
                        "SYM-022",
                        "symfony/runtime is not in require. It provides the Runtime component "
                        "for better application bootstrapping.",
                        file="composer.json",
                        suggestion="Run `composer require symfony/runtime`",
                    )
                )

        # ── Testing ──
        if not snapshot.any_exists("phpunit.xml.dist", "phpunit.xml"):
            issues.append(
                self.issue(
                    "SYM-030",
                    "No phpunit.xml.dist or phpunit.xml found.",
                    suggestion="Create phpunit.xml.dist with your test configuration",
                )
            )
        if not snapshot.is_dir("tests"):
            issues.append(
                self.issue(
                    "SYM-031",
                    "No tests/ directory found. Symfony projects should have automated tests.",
                    suggestion="Create a tests/ directory and add your first test case",
                    metadata={"directory": "tests"},
                )
            )
        if composer is not None and not any(
            p in require or p in require_dev for p in PHPUNIT_PACKAGES
        ):
            issues.append(
                self.issue(
                    "SYM-032",
                    "Neither phpunit/phpunit nor symfony/phpunit-bridge found in composer.json.",
                    file="composer.json",
                    suggestion="Run `composer require --dev symfony/phpunit-bridge`",
                )
            )

        # ── Security ──
        for line_num, line in enumerate(env.splitlines(), start=1):
            stripped = line.strip()
            if not stripped.startswith("#") and _DB_CREDENTIALS.search(stripped):
                issues.append(
                    self.issue(
                        "SYM-040",
                        "DATABASE_URL contains inline credentials (user:pass@). "
                        "Use environment variables in production.",
                        file=".env",
                        line=line_num,
                        suggestion="Use environment variables or a secrets vault for database credentials",
                    )
                )
                break
        if composer is not None and snapshot.is_dir("src/Controller") and "nelmio/cors-bundle" not in require:
            issues.append(
                self.issue(
                    "SYM-041",
                    "nelmio/cors-bundle is not installed. API projects need CORS configuration.",
                    file="composer.json",
                    suggestion="Run `composer require nelmio/cors-bundle`",
                )
            )
        for rel in snapshot.iter_files(under="src", extensions=["php"]):
            cancel.check()
            text = snapshot.read_text(rel) or ""
            for line_num, line in enumerate(text.splitlines(), start=1):
                if _UNSERIALIZE.search(line):
                    issues.append(
                        self.issue(
                            "SYM-042",
                            f"unserialize() found in {rel}. This can lead to object injection "
                            "vulnerabilities.",
                            file=rel,
                            line=line_num,
                            suggestion="Use json_decode() or Symfony Serializer instead of unserialize()",
                        )
                    )
                    # One issue per file
                    break

        # ── Best practices ──
        gitignore = gitignore_lines(project)
        if gitignore is not None:
            missing = [e for e in ("var/", "vendor/") if not gitignore_covers(gitignore, e)]
            if missing:
                issues.append(
                    self.issue(
                        "SYM-050",
                        f".gitignore should include {' and '.join(missing)} for Symfony projects.",
                        title=f".gitignore missing: {', '.join(missing)}",
                        file=".gitignore",
                        suggestion=f"Add {' and '.join(missing)} to .gitignore",
                        metadata={"entries": missing},
                    )
                )
        if not snapshot.is_file("rector.php"):
            issues.append(
                self.issue(
                    "SYM-052",
                    "Rector automates code upgrades and refactoring for PHP/Symfony projects.",
                    suggestion="Run `composer require --dev rector/rector` and create rector.php",
                )
            )
        if not snapshot.any_exists("phpstan.neon", "phpstan.neon.dist"):
            issues.append(
                self.issue(
                    "SYM-053",
                    "No phpstan.neon or phpstan.neon.dist found. Static analysis catches bugs early.",
                    suggestion="Run `composer require --dev phpstan/phpstan` and create phpstan.neon",
                )
            )

        return issues

    def _misplaced(self, project: Project, rule_id: str, suffix: str, expected: str) -> list[Issue]:
        issues = []
        for rel in project.snapshot.files:
            if not rel.endswith(suffix) or rel.startswith((expected, "var/")):
                continue
            issues.append(
                self.issue(
                    rule_id,
                    f"File found outside the standard directory: {rel}",
                    file=rel,
                    suggestion=f"Move it to {expected}",
                )
            )
        return issues

    def _check_app_secret(self, env: str) -> list[Issue]:
        for line_num, line in enumerate(env.splitlines(), start=1):
            stripped = line.strip()
            if not stripped.startswith("APP_SECRET="):
                continue
            value = stripped.removeprefix("APP_SECRET=").strip().strip("\"'")
            if len(value) < 16 or value.lower() in KNOWN_DEFAULT_SECRETS:
                return [
                    self.issue(
                        "SYM-012",
                        "APP_SECRET in .env is a known default or shorter than 16 characters.",
                        file=".env",
                        line=line_num,
                        suggestion="Generate a strong random secret: "
                        "`php -r \"echo bin2hex(random_bytes(16));\"`",
                    )
                ]
            break
        return []

    def _check_prod_debug(self, project: Project, cancel: CancelToken) -> list[Issue]:
        snapshot = project.snapshot
        issues = []
        for rel in snapshot.iter_files(under="config/packages/prod", extensions=["yaml", "yml"]):
            if rel.count("/") != 3:
                continue
            cancel.check()
            text = snapshot.read_text(rel) or ""
            for line_num, line in enumerate(text.splitlines(), start=1):
                if DEBUG_TRUE_PATTERN.match(line):
                    issues.append(
                        self.issue(
                            "SYM-013",
                            f"debug: true found in production config file: {rel}",
                            file=rel,
                            line=line_num,
                            suggestion="Set debug: false in production configuration",
                        )
                    )
                    break
        return issues


def _section(composer: object, key: str) -> dict[str, str]:
    if not isinstance(composer, dict) or not isinstance(composer.get(key), dict):
        return {}
    return {name: str(value) for name, value in composer[key].items()}
