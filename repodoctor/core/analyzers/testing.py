"""
Testing Analyzer — Test directories, test configuration, test ratio and coverage.

Coverage is read from an existing report only (coverage-summary.json,
coverage.xml or lcov.info); no test tool is ever executed.
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ElementTree

from repodoctor.core.analyzers.base import Analyzer, CancelToken, catalog
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.project_models import Framework
from repodoctor.models.ruleset_models import EffectiveRuleset

logger = logging.getLogger("repodoctor.analyzers.testing")

TEST_DIRS: dict[Framework, list[str]] = {
    Framework.SYMFONY: ["tests"],
    Framework.LARAVEL: ["tests"],
    Framework.FLUTTER: ["test"],
    Framework.NEXTJS: ["__tests__", "tests", "test", "spec"],
    Framework.NODEJS: ["__tests__", "tests", "test", "spec"],
    Framework.RUST_CARGO: ["tests"],
    Framework.PYTHON: ["tests", "test"],
    Framework.GENERIC: ["tests", "test", "__tests__", "spec"],
}

TEST_CONFIGS: dict[Framework, list[str]] = {
    Framework.SYMFONY: ["phpunit.xml", "phpunit.xml.dist"],
    Framework.LARAVEL: ["phpunit.xml", "phpunit.xml.dist"],
    Framework.FLUTTER: ["test"],
    Framework.NEXTJS: [
        "jest.config.js",
        "jest.config.ts",
        "vitest.config.js",
        "vitest.config.ts",
        ".mocharc.yml",
        ".mocharc.json",
    ],
    Framework.NODEJS: [
        "jest.config.js",
        "jest.config.ts",
        "vitest.config.js",
        "vitest.config.ts",
        ".mocharc.yml",
        ".mocharc.json",
    ],
    Framework.PYTHON: ["pytest.ini", "pyproject.toml", "setup.cfg", "tox.ini"],
}

SOURCE_EXTENSIONS: dict[Framework, list[str]] = {
    Framework.SYMFONY: ["php"],
    Framework.LARAVEL: ["php"],
    Framework.FLUTTER: ["dart"],
    Framework.NEXTJS: ["js", "ts", "jsx", "tsx"],
    Framework.NODEJS: ["js", "ts", "jsx", "tsx"],
    Framework.RUST_CARGO: ["rs"],
    Framework.PYTHON: ["py"],
    Framework.GENERIC: ["rs", "py", "js", "ts", "php", "dart"],
}

SOURCE_DIRS = ["src", "lib", "app"]

_LCOV_FOUND = re.compile(r"^LF:(\d+)$", re.MULTILINE)
_LCOV_HIT = re.compile(r"^LH:(\d+)$", re.MULTILINE)


class TestingAnalyzer(Analyzer):
    __test__ = False  # not a pytest class

    name = "testing"
    description = "Checks testing setup, configuration, and coverage"
    category = Category.TESTING
    rules = catalog(
        Rule(id="TST-001", severity=Severity.HIGH, title="No test directory found"),
        Rule(id="TST-002", severity=Severity.MEDIUM, title="No test configuration found"),
        Rule(
            id="TST-003",
            severity=Severity.HIGH,
            title="Test directory exists but contains no test files",
        ),
        Rule(id="TST-004", severity=Severity.MEDIUM, title="Low test-to-source file ratio"),
        Rule(id="TST-005", severity=Severity.MEDIUM, title="Test coverage below minimum"),
    )

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        framework = project.framework
        issues: list[Issue] = []

        test_dirs = TEST_DIRS[framework]
        present_dirs = [d for d in test_dirs if snapshot.is_dir(d)]
        if not present_dirs:
            issues.append(
                self.issue(
                    "TST-001",
                    "Expected one of: " + ", ".join(test_dirs),
                    suggestion=f"Create a {test_dirs[0]} directory with test files",
                )
            )

        configs = TEST_CONFIGS.get(framework, [])
        if configs and not snapshot.any_exists(*configs):
            issues.append(
                self.issue(
                    "TST-002",
                    "Expected one of: " + ", ".join(configs),
                    suggestion="Add a test configuration file for your testing framework",
                )
            )

        cancel.check()
        extensions = SOURCE_EXTENSIONS[framework]
        source_count = sum(1 for _ in snapshot.iter_files(under=SOURCE_DIRS, extensions=extensions))
        test_count = (
            sum(1 for _ in snapshot.iter_files(under=present_dirs, extensions=extensions))
            if present_dirs
            else 0
        )

        if source_count > 0 and present_dirs:
            min_ratio = float(self.param(ruleset, "min_test_ratio", 0.2))
            if test_count == 0:
                issues.append(
                    self.issue(
                        "TST-003",
                        f"Found {source_count} source files but 0 test files.",
                        suggestion="Add test files to cover your source code",
                    )
                )
            elif test_count / source_count < min_ratio:
                ratio = test_count / source_count
                issues.append(
                    self.issue(
                        "TST-004",
                        f"Found {test_count} test files for {source_count} source files "
                        f"(ratio: {ratio:.0%}, minimum {min_ratio:.0%}). Consider adding more tests.",
                        suggestion="Add test files until the ratio reaches the configured minimum",
                        metadata={"ratio": round(ratio, 4), "min_test_ratio": min_ratio},
                    )
                )

        min_coverage = self.param(ruleset, "min_coverage")
        if min_coverage is not None:
            cancel.check()
            report = read_coverage(project)
            if report is not None:
                path, percent = report
                if percent < float(min_coverage):
                    issues.append(
                        self.issue(
                            "TST-005",
                            f"Line coverage is {percent:.1f}% according to {path}, "
                            f"below the required {float(min_coverage):g}%.",
                            title=f"Test coverage below minimum ({percent:.1f}%)",
                            file=path,
                            suggestion="Add tests for uncovered code paths",
                            metadata={"coverage": round(percent, 2), "min_coverage": min_coverage},
                        )
                    )

        return issues


# ── Coverage reports ──


def read_coverage(project: Project) -> tuple[str, float] | None:
    """Line coverage percentage from the first readable report, if any."""
    snapshot = project.snapshot
    for path, parser in (
        ("coverage/coverage-summary.json", _istanbul_percent),
        ("coverage.xml", _cobertura_percent),
        ("coverage/cobertura-coverage.xml", _cobertura_percent),
        ("coverage/lcov.info", _lcov_percent),
        ("lcov.info", _lcov_percent),
    ):
        text = snapshot.read_text(path)
        if text is None:
            continue
        try:
            percent = parser(text)
        except (ValueError, KeyError, TypeError, ElementTree.ParseError) as e:
            logger.debug(f"Ignoring unreadable coverage report {path}: {e}")
            continue
        if percent is not None:
            return path, percent
    return None


def _istanbul_percent(text: str) -> float | None:
    return float(json.loads(text)["total"]["lines"]["pct"])


def _cobertura_percent(text: str) -> float | None:
    rate = ElementTree.fromstring(text).get("line-rate")
    return float(rate) * 100 if rate is not None else None


def _lcov_percent(text: str) -> float | None:
    found = sum(int(n) for n in _LCOV_FOUND.findall(text))
    hit = sum(int(n) for n in _LCOV_HIT.findall(text))
    return hit / found * 100 if found else None
