"""
Config Files Analyzer — Framework configuration, linters, editorconfig and .env.
"""

from __future__ import annotations

from repodoctor.core.analyzers.base import (
    Analyzer,
    CancelToken,
    catalog,
    env_is_gitignored,
    gitignore_lines,
)
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.project_models import Framework
from repodoctor.models.ruleset_models import EffectiveRuleset

# (accepted paths, reported name, purpose)
FRAMEWORK_CONFIGS: dict[Framework, list[tuple[tuple[str, ...], str, str]]] = {
    Framework.SYMFONY: [
        ((".env.example", ".env.dist"), ".env.example", "Environment example file for team onboarding"),
        (("config/packages/doctrine.yaml",), "config/packages/doctrine.yaml", "Doctrine ORM configuration"),
        (("config/packages/security.yaml",), "config/packages/security.yaml", "Security configuration"),
    ],
    Framework.LARAVEL: [
        ((".env.example",), ".env.example", "Environment example file for team onboarding"),
        (("config/app.php",), "config/app.php", "Application configuration"),
        (("config/database.php",), "config/database.php", "Database configuration"),
    ],
    Framework.FLUTTER: [
        (("analysis_options.yaml",), "analysis_options.yaml", "Dart analysis options for linting"),
    ],
    Framework.NEXTJS: [
        (
            ("tsconfig.json", "jsconfig.json"),
            "tsconfig.json",
            "TypeScript/JavaScript configuration for path aliases and compiler options",
        ),
    ],
    Framework.RUST_CARGO: [
        (("rustfmt.toml", ".rustfmt.toml"), "rustfmt.toml", "Rust formatter configuration"),
    ],
}

ESLINT_CONFIGS = (
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
)

PRETTIER_CONFIGS = (
    ".prettierrc",
    ".prettierrc.js",
    ".prettierrc.json",
    ".prettierrc.yml",
    ".prettierrc.yaml",
    "prettier.config.js",
)

LINTER_CONFIGS: dict[Framework, tuple[str, ...]] = {
    Framework.FLUTTER: ("analysis_options.yaml",),
    Framework.RUST_CARGO: ("clippy.toml", ".clippy.toml"),
    Framework.NODEJS: ESLINT_CONFIGS + PRETTIER_CONFIGS,
    Framework.NEXTJS: ESLINT_CONFIGS + PRETTIER_CONFIGS,
    Framework.PYTHON: (".flake8", "setup.cfg", ".pylintrc", "ruff.toml", ".ruff.toml"),
    Framework.SYMFONY: (
        "phpstan.neon",
        "phpstan.neon.dist",
        ".php-cs-fixer.php",
        ".php-cs-fixer.dist.php",
    ),
    Framework.LARAVEL: (
        "phpstan.neon",
        "phpstan.neon.dist",
        ".php-cs-fixer.php",
        ".php-cs-fixer.dist.php",
    ),
}


class ConfigFilesAnalyzer(Analyzer):
    name = "config_files"
    description = "Checks for framework-specific configuration files and common config issues"
    category = Category.CONFIGURATION
    rules = catalog(
        Rule(id="CFG-001", severity=Severity.MEDIUM, title="Missing framework configuration"),
        Rule(id="CFG-002", severity=Severity.LOW, title="Missing .editorconfig", auto_fixable=True),
        Rule(id="CFG-003", severity=Severity.HIGH, title=".env file is not gitignored", auto_fixable=True),
        Rule(id="CFG-004", severity=Severity.MEDIUM, title="Missing linter configuration"),
    )

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        framework = project.framework
        issues: list[Issue] = []

        for accepted, reported, purpose in FRAMEWORK_CONFIGS.get(framework, []):
            if not snapshot.any_exists(*accepted):
                issues.append(self._missing_config(reported, purpose, framework))
        if framework is Framework.PYTHON and not (
            snapshot.is_file("setup.cfg") or _has_pyproject_tool_section(project)
        ):
            issues.append(
                self._missing_config(
                    "setup.cfg or pyproject.toml [tool.*]", "Python tooling configuration", framework
                )
            )

        if framework in LINTER_CONFIGS:
            has_linter = snapshot.any_exists(*LINTER_CONFIGS[framework])
            if framework is Framework.PYTHON:
                has_linter = has_linter or _has_pyproject_tool_section(project)
            if not has_linter:
                issues.append(
                    self.issue(
                        "CFG-004",
                        f"No linter or code style configuration found for "
                        f"{framework.display_name} project.",
                        suggestion="Add a linter configuration file to enforce code quality",
                    )
                )

        if not snapshot.is_file(".editorconfig"):
            issues.append(
                self.issue(
                    "CFG-002",
                    "No .editorconfig found. This file helps maintain consistent "
                    "coding styles across editors.",
                    file=".editorconfig",
                    suggestion="Create an .editorconfig file to define coding style rules",
                )
            )

        if snapshot.is_file(".env") and not env_is_gitignored(gitignore_lines(project)):
            issues.append(
                self.issue(
                    "CFG-003",
                    ".env file exists and is not gitignored. This could lead to secret leaks.",
                    file=".env",
                    suggestion="Add .env to .gitignore to prevent committing secrets",
                    metadata={"entries": [".env"]},
                )
            )

        return issues

    def _missing_config(self, reported: str, purpose: str, framework: Framework) -> Issue:
        return self.issue(
            "CFG-001",
            f"{purpose}. This file is recommended for {framework.display_name} projects.",
            title=f"Missing {reported}",
            suggestion=f"Create {reported}",
        )


def _has_pyproject_tool_section(project: Project) -> bool:
    pyproject = project.snapshot.document("pyproject.toml")
    return isinstance(pyproject, dict) and bool(pyproject.get("tool"))
