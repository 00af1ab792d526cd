"""
Flutter Analyzer — Flutter/Dart structure, pubspec hygiene, tests and security.
"""

from __future__ import annotations

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

DEV_ONLY_PACKAGES = [
    "flutter_test",
    "build_runner",
    "mockito",
    "flutter_lints",
    "test",
    "integration_test",
    "fake_async",
]

GITIGNORE_ENTRIES = ["build/", ".dart_tool/", ".flutter-plugins"]

PLATFORM_ICONS = [
    ("android", "android/app/src/main/res/mipmap-hdpi"),
    ("ios", "ios/Runner/Assets.xcassets/AppIcon.appiconset"),
]

LOCAL_HTTP_PREFIXES = ("localhost", "127.0.0.1", "10.")


class FlutterAnalyzer(Analyzer):
    name = "flutter"
    description = "Flutter-specific project structure, configuration, and best practices"
    category = Category.STRUCTURE
    rules = catalog(
        Rule(id="FLT-003", severity=Severity.MEDIUM, title="lib/main.dart is too large", category=Category.STRUCTURE),
        Rule(id="FLT-004", severity=Severity.MEDIUM, title="No architecture structure in lib/", category=Category.STRUCTURE),
        Rule(id="FLT-010", severity=Severity.LOW, title="Missing description in pubspec.yaml", category=Category.CONFIGURATION),
        Rule(id="FLT-011", severity=Severity.HIGH, title="SDK constraint below Dart 3.0", category=Category.CONFIGURATION),
        Rule(id="FLT-021", severity=Severity.MEDIUM, title="Dev-only packages in dependencies", category=Category.DEPENDENCIES),
        Rule(id="FLT-022", severity=Severity.LOW, title="Git dependencies found", category=Category.DEPENDENCIES),
        Rule(id="FLT-030", severity=Severity.HIGH, title="No widget tests found", category=Category.TESTING),
        Rule(id="FLT-031", severity=Severity.MEDIUM, title="Missing integration_test/ directory", category=Category.TESTING, auto_fixable=True),
        Rule(id="FLT-032", severity=Severity.HIGH, title="Missing flutter_test dependency", category=Category.TESTING),
        Rule(id="FLT-041", severity=Severity.HIGH, title="Insecure HTTP URL found", category=Category.SECURITY, auto_fixable=True),
        Rule(id="FLT-042", severity=Severity.HIGH, title="debugPrint() found in lib/ code", category=Category.SECURITY),
        Rule(id="FLT-050", severity=Severity.MEDIUM, title="Android build.gradle missing signingConfigs", category=Category.CONFIGURATION),
        Rule(id="FLT-051", severity=Severity.MEDIUM, title="Missing ios/Runner/Info.plist", category=Category.CONFIGURATION),
        Rule(id="FLT-052", severity=Severity.LOW, title="Missing platform icon assets", category=Category.STRUCTURE),
        Rule(id="FLT-053", severity=Severity.MEDIUM, title=".gitignore missing Flutter entries", category=Category.STRUCTURE, auto_fixable=True),
    )

    def applies_to(self, project: Project) -> bool:
        return project.framework is Framework.FLUTTER

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        snapshot = project.snapshot
        pubspec = snapshot.document("pubspec.yaml")
        pubspec = pubspec if isinstance(pubspec, dict) else None
        issues: list[Issue] = []

        # ── Structure ──
        max_main_lines = int(self.param(ruleset, "max_main_lines", 50))
        main_dart = snapshot.read_text("lib/main.dart")
        if main_dart is not None:
            non_blank = sum(1 for line in main_dart.splitlines() if line.strip())
            if non_blank > max_main_lines:
                issues.append(
                    self.issue(
                        "FLT-003",
                        f"lib/main.dart has {non_blank} non-blank lines. Business logic should "
                        "be separated into dedicated files.",
                        file="lib/main.dart",
                        suggestion="Extract widgets and business logic into separate files under lib/",
                    )
                )

        if snapshot.is_dir("lib") and not snapshot.children("lib"):
            top_level = [f for f in snapshot.iter_files(under="lib", extensions=["dart"]) if f.count("/") == 1]
            if len(top_level) > 3:
                issues.append(
                    self.issue(
                        "FLT-004",
                        f"lib/ contains {len(top_level)} Dart files and no subdirectories.",
                        suggestion="Create subdirectories like lib/screens/, lib/widgets/, lib/models/",
                    )
                )

        for platform, icon_path in PLATFORM_ICONS:
            if snapshot.is_dir(platform) and not snapshot.is_dir(icon_path):
                issues.append(
                    self.issue(
                        "FLT-052",
                        f"{platform}/ exists but {icon_path} is missing.",
                        title=f"Missing {platform} icon assets",
                        suggestion=f"Add proper icon assets for {platform} platform",
                    )
                )

        gitignore = gitignore_lines(project)
        if gitignore is not None:
            missing = [e for e in GITIGNORE_ENTRIES if not gitignore_covers(gitignore, e)]
            if missing:
                issues.append(
                    self.issue(
                        "FLT-053",
                        f".gitignore should include {', '.join(missing)} for Flutter projects.",
                        title=f".gitignore missing: {', '.join(missing)}",
                        file=".gitignore",
                        suggestion=f"Add {', '.join(missing)} to .gitignore",
                        metadata={"entries": missing},
                    )
                )

        # ── Configuration and dependencies ──
        if pubspec is not None:
            issues.extend(self._check_pubspec(pubspec))

        gradle = snapshot.read_text("android/app/build.gradle")
        if gradle is not None and "signingConfigs" not in gradle:
            issues.append(
                self.issue(
                    "FLT-050",
                    "android/app/build.gradle exists but has no signingConfigs for release builds.",
                    file="android/app/build.gradle",
                    suggestion="Add signingConfigs for release builds in build.gradle",
                )
            )
        if snapshot.is_dir("ios") and not snapshot.is_file("ios/Runner/Info.plist"):
            issues.append(
                self.issue(
                    "FLT-051",
                    "ios/ directory exists but ios/Runner/Info.plist is missing.",
                    suggestion="Run `flutter create .` to regenerate iOS platform files",
                )
            )

        # ── Testing ──
        if snapshot.is_dir("test"):
            cancel.check()
            has_widget_test = any(
                "testWidgets" in (snapshot.read_text(rel) or "")
                for rel in snapshot.iter_files(under="test", extensions=["dart"])
            )
            if not has_widget_test:
                issues.append(
                    self.issue(
                        "FLT-030",
                        "test/ directory exists but no file contains testWidgets calls.",
                        suggestion="Add widget tests using testWidgets() for UI components",
                    )
                )
        if not snapshot.is_dir("integration_test"):
            issues.append(
                self.issue(
                    "FLT-031",
                    "No integration_test/ directory found. Integration tests verify complete app flows.",
                    suggestion="Create integration_test/ and add integration tests",
                    metadata={"directory": "integration_test"},
                )
            )
        if pubspec is not None and not (
            "flutter_test" in _deps(pubspec, "dependencies")
            or "flutter_test" in _deps(pubspec, "dev_dependencies")
        ):
            issues.append(
                self.issue(
                    "FLT-032",
                    "flutter_test is not in dependencies or dev_dependencies.",
                    file="pubspec.yaml",
                    suggestion="Add flutter_test to dev_dependencies in pubspec.yaml",
                )
            )

        # ── Security ──
        for rel in snapshot.iter_files(under="lib", extensions=["dart"]):
            cancel.check()
            issues.extend(self._scan_dart(rel, snapshot.read_text(rel) or ""))

        return issues

    def _check_pubspec(self, pubspec: dict[str, Any]) -> list[Issue]:
        issues = []
        description = pubspec.get("description")
        if not isinstance(description, str) or not description.strip():
            issues.append(
                self.issue(
                    "FLT-010",
                    "pubspec.yaml is missing a description field.",
                    file="pubspec.yaml",
                    suggestion="Add a meaningful description field to pubspec.yaml",
                )
            )

        environment = pubspec.get("environment")
        sdk = environment.get("sdk") if isinstance(environment, dict) else None
        major = parse_major_version(sdk)
        if major is not None and major < 3:
            issues.append(
                self.issue(
                    "FLT-011",
                    f"environment.sdk is '{sdk}'. Dart 3+ brings sound null safety and modern features.",
                    file="pubspec.yaml",
                    suggestion="Update SDK constraint to '^3.0.0' or higher",
                )
            )

        dependencies = _deps(pubspec, "dependencies")
        misplaced = [pkg for pkg in DEV_ONLY_PACKAGES if pkg in dependencies]
        if misplaced:
            issues.append(
                self.issue(
                    "FLT-021",
                    f"These packages belong in dev_dependencies: {', '.join(misplaced)}",
                    title=f"Dev-only packages in dependencies: {', '.join(misplaced)}",
                    file="pubspec.yaml",
                    suggestion="Move these packages to dev_dependencies in pubspec.yaml",
                )
            )

        git_deps = sorted(
            name for name, spec in dependencies.items() if isinstance(spec, dict) and "git" in spec
        )
        if git_deps:
            issues.append(
                self.issue(
                    "FLT-022",
                    "Dependencies using git: source can be unstable and hard to reproduce.",
                    title=f"Git dependencies found: {', '.join(git_deps)}",
                    file="pubspec.yaml",
                    suggestion="Consider publishing packages to pub.dev or using path dependencies",
                )
            )
        return issues

    def _scan_dart(self, rel: str, text: str) -> list[Issue]:
        issues = []
        http_reported = debug_reported = False
        for line_num, line in enumerate(text.splitlines(), start=1):
            pos = line.find("http://")
            if not http_reported and pos != -1 and not line[pos + 7:].startswith(LOCAL_HTTP_PREFIXES):
                http_reported = True
                issues.append(
                    self.issue(
                        "FLT-041",
                        f"Insecure http:// URL in {rel}.",
                        file=rel,
                        line=line_num,
                        suggestion="Replace http:// with https://",
                    )
                )
            if not debug_reported and "debugPrint(" in line:
                debug_reported = True
                issues.append(
                    self.issue(
                        "FLT-042",
                        f"debugPrint() call in {rel} may leak data in release builds.",
                        file=rel,
                        line=line_num,
                        suggestion="Remove debugPrint() calls or use a proper logging framework",
                    )
                )
            if http_reported and debug_reported:
                break
        return issues


def _deps(pubspec: dict[str, Any], key: str) -> dict[str, Any]:
    value = pubspec.get(key)
    return value if isinstance(value, dict) else {}
