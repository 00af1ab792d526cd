"""
Next.js Analyzer — Router layout, next.config, dependencies, tests and client-side secrets.
"""

from __future__ import annotations

import re
from typing import Any

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

NEXT_CONFIG_FILES = ("next.config.js", "next.config.mjs", "next.config.ts")
SCRIPT_EXTENSIONS = ("tsx", "jsx", "js")
SOURCE_DIRS = ("app", "pages", "src", "components")

CORE_DEPENDENCIES = ("next", "react", "react-dom")
HEAVY_DEPENDENCIES = ("moment", "lodash")
TEST_CONFIGS = tuple(
    f"{tool}.config.{ext}" for tool in ("jest", "vitest", "cypress") for ext in ("js", "ts", "mjs")
)
TEST_DIRS = ("__tests__", "tests", "test", "cypress")
TEST_LIBRARIES = (
    "jest",
    "vitest",
    "@testing-library/react",
    "@testing-library/jest-dom",
    "cypress",
    "playwright",
    "@playwright/test",
)

SENSITIVE_SUFFIXES = ("SECRET", "PASSWORD", "KEY", "TOKEN")
_PUBLIC_ENV = re.compile(r"process\.env\.NEXT_PUBLIC_(\w+)")
_TSCONFIG_STRICT = re.compile(r'"strict"\s*:\s*true')

MIN_NEXT_CONFIG_BYTES = 10


class NextJsAnalyzer(Analyzer):
    name = "nextjs"
    description = "Next.js-specific project structure, configuration, and best practices"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="NJS-001", severity=Severity.HIGH, title="App Router missing root layout", category=S),
        Rule(id="NJS-002", severity=Severity.MEDIUM, title="Mixing App Router and Pages Router", category=S),
        Rule(id="NJS-003", severity=Severity.MEDIUM, title="Missing error page", category=S),
        Rule(id="NJS-004", severity=Severity.LOW, title="App Router missing special files", category=S),
        Rule(id="NJS-010", severity=Severity.HIGH, title="Missing or empty next.config", category=C),
        Rule(id="NJS-011", severity=Severity.MEDIUM, title="TypeScript strict mode disabled", category=C),
        Rule(id="NJS-012", severity=Severity.LOW, title="No image optimization config", category=C),
        Rule(id="NJS-013", severity=Severity.MEDIUM, title="React strict mode not enabled", category=C),
        Rule(id="NJS-020", severity=Severity.HIGH, title="Missing core dependencies", category=D),
        Rule(id="NJS-021", severity=Severity.HIGH, title="Outdated Next.js version", category=D),
        Rule(id="NJS-022", severity=Severity.LOW, title="Heavy bundle dependencies", category=D),
        Rule(id="NJS-030", severity=Severity.HIGH, title="No test framework configuration found", category=T),
        Rule(id="NJS-031", severity=Severity.MEDIUM, title="No test directory found", category=T, auto_fixable=True),
        Rule(id="NJS-032", severity=Severity.MEDIUM, title="No test library in dependencies", category=T),
        Rule(id="NJS-040", severity=Severity.HIGH, title="Secret exposed through NEXT_PUBLIC_ variable", category=X),
        Rule(id="NJS-041", severity=Severity.MEDIUM, title="No security headers configured", category=X),
        Rule(id="NJS-042", severity=Severity.HIGH, title="Use of dangerouslySetInnerHTML", category=X),
        Rule(id="NJS-050", severity=Severity.MEDIUM, title=".gitignore missing .env*.local", category=C, auto_fixable=True),
        Rule(id="NJS-051", severity=Severity.LOW, title="Missing public/robots.txt", category=S),
        Rule(id="NJS-052", severity=Severity.INFO, title="No sitemap found", category=S),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.NEXTJS

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        package = snapshot.document("package.json")
        package = package if isinstance(package, dict) else None
        deps = _section(package, "dependencies")
        dev_deps = _section(package, "devDependencies")
        issues: list[Issue] = []

        issues.extend(self._check_routers(project))

        # ── next.config ──
        config_file = next((f for f in NEXT_CONFIG_FILES if snapshot.is_file(f)), None)
        config_text = snapshot.read_text(config_file) if config_file else None
        if config_text is None or len(config_text.strip()) < MIN_NEXT_CONFIG_BYTES:
            issues.append(
                self.issue(
                    "NJS-010",
                    "next.config.{js,mjs,ts} is missing or effectively empty.",
                    file=config_file,
                    suggestion="Create a next.config.js with reactStrictMode, images and headers settings",
                )
            )
        else:
            for rule_id, keyword, suggestion in (
                ("NJS-012", "images", "Configure `images` in next.config for remote image domains"),
                ("NJS-013", "reactStrictMode", "Add `reactStrictMode: true` to next.config"),
                ("NJS-041", "headers", "Add a `headers()` function with security headers to next.config"),
            ):
                if keyword not in config_text:
                    issues.append(
                        self.issue(
                            rule_id,
                            f"{config_file} does not configure `{keyword}`.",
                            file=config_file,
                            suggestion=suggestion,
                        )
                    )

        tsconfig = snapshot.read_text("tsconfig.json")
        if tsconfig is not None and not _TSCONFIG_STRICT.search(tsconfig):
            issues.append(
                self.issue(
                    "NJS-011",
                    'tsconfig.json exists but "strict": true is not set.',
                    file="tsconfig.json",
                    suggestion='Set "strict": true in tsconfig.json compilerOptions',
                )
            )

        gitignore = gitignore_lines(project)
        if gitignore is not None and not gitignore_covers(gitignore, ".env.local", ".env*.local", ".env.*"):
            issues.append(
                self.issue(
                    "NJS-050",
                    ".gitignore does not exclude local env files (.env*.local).",
                    file=".gitignore",
                    suggestion="Add .env*.local to .gitignore",
                    metadata={"entries": [".env*.local"]},
                )
            )

        # ── Dependencies ──
        if package is not None:
            missing = [d for d in CORE_DEPENDENCIES if d not in deps]
            if missing:
                issues.append(
                    self.issue(
                        "NJS-020",
                        f"package.json dependencies lack: {', '.join(missing)}",
                        title=f"Missing core dependencies: {', '.join(missing)}",
                        file="package.json",
                        suggestion=f"Run `npm install {' '.join(missing)}`",
                    )
                )
            min_major = int(self.param(ruleset, "min_next_major", 14))
            major = parse_major_version(deps.get("next"))
            if major is not None and major < min_major:
                issues.append(
                    self.issue(
                        "NJS-021",
                        f"next is pinned to {deps['next']}; version {min_major}+ is recommended.",
                        title=f"Outdated Next.js version (v{major})",
                        file="package.json",
                        suggestion=f"Upgrade to Next.js {min_major} or later",
                    )
                )
            heavy = [d for d in HEAVY_DEPENDENCIES if d in deps]
            if heavy:
                issues.append(
                    self.issue(
                        "NJS-022",
                        f"{', '.join(heavy)} add significant weight to client bundles.",
                        title=f"Heavy bundle dependencies: {', '.join(heavy)}",
                        file="package.json",
                        suggestion="Prefer date-fns or dayjs over moment, and lodash-es or native methods over lodash",
                    )
                )

        # ── Testing ──
        if not snapshot.any_exists(*TEST_CONFIGS):
            issues.append(
                self.issue(
                    "NJS-030",
                    "No jest, vitest, or cypress config file found.",
                    suggestion="Set up a testing framework (Jest, Vitest, or Cypress)",
                )
            )
        if not any(snapshot.is_dir(d) for d in TEST_DIRS):
            issues.append(
                self.issue(
                    "NJS-031",
                    "No __tests__/, tests/, test/, or cypress/ directory found.",
                    suggestion="Create a test directory and add automated tests",
                    metadata={"directory": "__tests__"},
                )
            )
        if package is not None and not any(lib in deps or lib in dev_deps for lib in TEST_LIBRARIES):
            issues.append(
                self.issue(
                    "NJS-032",
                    "No testing library found in dependencies or devDependencies.",
                    file="package.json",
                    suggestion="Add jest with @testing-library/react, or vitest",
                )
            )

        # ── Source scan ──
        for rel in snapshot.iter_files(under=SOURCE_DIRS, extensions=("ts", *SCRIPT_EXTENSIONS)):
            cancel.check()
            issues.extend(self._scan_source(rel, snapshot.read_text(rel) or ""))

        # ── SEO ──
        if not snapshot.is_file("public/robots.txt"):
            issues.append(
                self.issue(
                    "NJS-051",
                    "No public/robots.txt found to guide search engine crawlers.",
                    suggestion="Add public/robots.txt or an app/robots.ts route",
                )
            )
        has_sitemap = (
            snapshot.is_file("public/sitemap.xml")
            or snapshot.any_exists(*(f"app/sitemap.{ext}" for ext in ("ts", "js", "tsx", "jsx")))
            or "next-sitemap" in deps
            or "next-sitemap" in dev_deps
        )
        if not has_sitemap:
            issues.append(
                self.issue(
                    "NJS-052",
                    "No public/sitemap.xml, app/sitemap route or next-sitemap dependency found.",
                    suggestion="Add an app/sitemap.ts route or use next-sitemap",
                )
            )

        return issues

    def _check_routers(self, project: Project) -> list[Issue]:
        snapshot = project.snapshot
        has_app = snapshot.is_dir("app")
        has_pages = snapshot.is_dir("pages")
        issues = []

        def any_special(directory: str, stem: str) -> bool:
            return snapshot.any_exists(*(f"{directory}/{stem}.{ext}" for ext in SCRIPT_EXTENSIONS))

        if has_app and not any_special("app", "layout"):
            issues.append(
                self.issue(
                    "NJS-001",
                    "app/ exists but no layout.tsx/jsx/js found. App Router requires a root layout.",
                    suggestion="Create app/layout.tsx with the root <html> and <body>",
                )
            )
        if has_app and has_pages:
            issues.append(
                self.issue(
                    "NJS-002",
                    "Both app/ and pages/ exist. Mixing routers complicates routing and data fetching.",
                    suggestion="Migrate pages/ routes to the App Router",
                )
            )
        has_error_page = (has_app and any_special("app", "error")) or (
            has_pages and any_special("pages", "_error")
        )
        if not has_error_page:
            issues.append(
                self.issue(
                    "NJS-003",
                    "No app/error or pages/_error page found.",
                    suggestion="Add app/error.tsx (App Router) or pages/_error.tsx (Pages Router)",
                )
            )
        if has_app:
            missing = [stem for stem in ("not-found", "loading") if not any_special("app", stem)]
            if missing:
                issues.append(
                    self.issue(
                        "NJS-004",
                        f"app/ has no {' or '.join(missing)} file.",
                        title=f"App Router missing: {', '.join(missing)}",
                        suggestion=f"Add {', '.join(f'app/{m}.tsx' for m in missing)}",
                    )
                )
        return issues

    def _scan_source(self, rel: str, text: str) -> list[Issue]:
        issues = []
        jsx = rel.endswith((".tsx", ".jsx"))
        for line_num, line in enumerate(text.splitlines(), start=1):
            for match in _PUBLIC_ENV.finditer(line):
                env_name = match.group(1)
                if env_name.upper().endswith(SENSITIVE_SUFFIXES):
                    issues.append(
                        self.issue(
                            "NJS-040",
                            f"NEXT_PUBLIC_{env_name} is inlined into the client bundle.",
                            file=rel,
                            line=line_num,
                            suggestion="Drop the NEXT_PUBLIC_ prefix and read the value server-side only",
                        )
                    )
            if jsx and "dangerouslySetInner" in line:
                issues.append(
                    self.issue(
                        "NJS-042",
                        f"dangerouslySetInnerHTML in {rel} can introduce XSS.",
                        file=rel,
                        line=line_num,
                        suggestion="Sanitize the HTML (e.g. DOMPurify) or render it as text",
                    )
                )
        return issues


def _section(package: dict[str, Any] | None, key: str) -> dict[str, str]:
    if package is None or not isinstance(package.get(key), dict):
        return {}
    return {name: str(value) for name, value in package[key].items()}
