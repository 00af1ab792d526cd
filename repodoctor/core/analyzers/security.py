"""
Security Analyzer — Hard-coded secrets, private keys and unignored .env files.

The secret scan is line-based regex matching, bounded by max_files and
max_lines, and memoized per file content through the FileCache.
"""

from __future__ import annotations

import re

from repodoctor.core.analyzers.base import (
    Analyzer,
    CancelToken,
    catalog,
    env_is_gitignored,
    gitignore_lines,
)
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue, Rule, Severity
from repodoctor.models.ruleset_models import EffectiveRuleset

SCANNABLE_EXTENSIONS = {
    "env", "yml", "yaml", "json", "toml", "php", "js", "ts", "py", "rs", "dart", "rb",
    "go", "cfg", "ini", "conf", "properties", "pem", "key",
}

SKIP_DIRS = {"dist", "build"}

SKIP_FILES = {
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Cargo.lock",
    "composer.lock",
    "pubspec.lock",
    "poetry.lock",
    "Gemfile.lock",
}

SECRET_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("API key", re.compile(r"""(?i)(api[_\-]?key|apikey)["']?\s*[=:]\s*["']?[a-zA-Z0-9]{16,}""")),
    ("Password", re.compile(r"""(?i)(password|passwd|pwd)["']?\s*[=:]\s*["'][^"']{4,}["']""")),
    ("Secret/Token", re.compile(r"""(?i)(secret|token|auth)["']?\s*[=:]\s*["'][^"']{8,}["']""")),
    ("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}")),
]

PRIVATE_KEY_MARKER = re.compile(r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----")


class SecurityAnalyzer(Analyzer):
    name = "security"
    description = "Scans for potential secrets, credentials, and security issues"
    category = Category.SECURITY
    rules = catalog(
        Rule(id="SEC-001", severity=Severity.CRITICAL, title="Potential hard-coded secret"),
        Rule(id="SEC-002", severity=Severity.CRITICAL, title="Private key file detected"),
        Rule(
            id="SEC-003",
            severity=Severity.HIGH,
            title=".env file without .gitignore entry",
            auto_fixable=True,
        ),
    )

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        issues: list[Issue] = []

        if project.snapshot.is_file(".env") and not env_is_gitignored(gitignore_lines(project)):
            issues.append(
                self.issue(
                    "SEC-003",
                    ".env file exists but is not listed in .gitignore. "
                    "Secrets may be committed to version control.",
                    file=".env",
                    suggestion="Add .env to .gitignore",
                    metadata={"entries": [".env"]},
                )
            )

        max_files = int(self.param(ruleset, "max_files", 500))
        max_lines = int(self.param(ruleset, "max_lines", 1000))
        scope = f"security:{max_lines}"

        for rel in self.scannable_files(project)[:max_files]:
            cancel.check()
            issues.extend(self._scan_cached(project, rel, scope, max_lines))

        return issues

    def scannable_files(self, project: Project) -> list[str]:
        out = []
        for rel in project.snapshot.files:
            parts = rel.split("/")
            base = parts[-1]
            if base in SKIP_FILES or any(p in SKIP_DIRS for p in parts[:-1]):
                continue
            ext = base.rsplit(".", 1)[-1].lower() if "." in base else ""
            if ext in SCANNABLE_EXTENSIONS or base.startswith(".env"):
                out.append(rel)
        return out

    def _scan_cached(self, project: Project, rel: str, scope: str, max_lines: int) -> list[Issue]:
        cache = project.cache
        content_hash = project.snapshot.content_hash(rel) if cache is not None else None
        if cache is not None and content_hash is not None:
            cached = cache.get(scope, rel, content_hash)
            if cached is not None:
                return cached

        text = project.snapshot.read_text(rel)
        if text is None:
            return []
        issues = self.scan_text(rel, text, max_lines)

        if cache is not None and content_hash is not None:
            cache.put(scope, rel, content_hash, issues)
        return issues

    def scan_text(self, rel: str, text: str, max_lines: int) -> list[Issue]:
        if PRIVATE_KEY_MARKER.search(text):
            return [
                self.issue(
                    "SEC-002",
                    f"File appears to contain a private key: {rel}",
                    file=rel,
                    suggestion="Remove private keys from the repository and use a secrets manager",
                )
            ]

        issues: list[Issue] = []
        for line_num, line in enumerate(text.splitlines()[:max_lines], start=1):
            for name, pattern in SECRET_PATTERNS:
                if pattern.search(line):
                    issues.append(
                        self.issue(
                            "SEC-001",
                            f"Possible {name} detected in {rel}",
                            title=f"Potential {name} found",
                            file=rel,
                            line=line_num,
                            suggestion=(
                                "Remove credentials and use environment variables "
                                "or a secrets manager"
                            ),
                        )
                    )
                    # One issue per line
                    break
        return issues
