"""
Framework Detector — Ranked, first-match-wins framework detection.

Pure function of the Snapshot: framework-specific indicators are checked
before generic ones, so a Symfony app with a package.json is still Symfony.
"""

from __future__ import annotations

import logging
from typing import Any

from repodoctor.core.snapshot import Snapshot
from repodoctor.models.project_models import (
    CIProvider,
    DetectedFramework,
    Framework,
    Language,
    PackageManager,
)

logger = logging.getLogger("repodoctor.detector")

# Priority-ordered: most specific first
INDICATORS: list[tuple[str, Framework, Language, PackageManager | None]] = [
    ("symfony.lock", Framework.SYMFONY, Language.PHP, PackageManager.COMPOSER),
    ("config/bundles.php", Framework.SYMFONY, Language.PHP, PackageManager.COMPOSER),
    ("artisan", Framework.LARAVEL, Language.PHP, PackageManager.COMPOSER),
    ("pubspec.yaml", Framework.FLUTTER, Language.DART, PackageManager.PUB),
    ("next.config.js", Framework.NEXTJS, Language.JAVASCRIPT, None),
    ("next.config.mjs", Framework.NEXTJS, Language.JAVASCRIPT, None),
    ("next.config.ts", Framework.NEXTJS, Language.TYPESCRIPT, None),
    ("Cargo.toml", Framework.RUST_CARGO, Language.RUST, PackageManager.CARGO),
    ("package.json", Framework.NODEJS, Language.JAVASCRIPT, None),
    ("pyproject.toml", Framework.PYTHON, Language.PYTHON, None),
    ("requirements.txt", Framework.PYTHON, Language.PYTHON, PackageManager.PIP),
    ("setup.py", Framework.PYTHON, Language.PYTHON, PackageManager.PIP),
]

CI_INDICATORS: list[tuple[str, CIProvider]] = [
    (".github/workflows", CIProvider.GITHUB_ACTIONS),
    (".gitlab-ci.yml", CIProvider.GITLAB_CI),
    (".circleci", CIProvider.CIRCLECI),
    (".travis.yml", CIProvider.TRAVIS),
    ("Jenkinsfile", CIProvider.JENKINS),
    ("bitbucket-pipelines.yml", CIProvider.BITBUCKET),
]


def detect(snapshot: Snapshot) -> DetectedFramework:
    """Return exactly one framework; Generic when nothing matches."""
    has_git = snapshot.is_dir(".git")
    ci_provider = detect_ci_provider(snapshot)

    for indicator, framework, language, pkg_mgr in INDICATORS:
        if not snapshot.is_file(indicator):
            continue
        if framework is Framework.PYTHON and pkg_mgr is None:
            pkg_mgr = _python_package_manager(snapshot)
        detected = DetectedFramework(
            framework=framework,
            language=_refine_language(snapshot, language),
            version=_detect_version(snapshot, framework),
            package_manager=pkg_mgr or _lockfile_package_manager(snapshot),
            indicator=indicator,
            has_git=has_git,
            ci_provider=ci_provider,
        )
        logger.info(
            f"Detected {framework.display_name} via {indicator}"
            + (f" (version {detected.version})" if detected.version else "")
        )
        return detected

    logger.info("No framework indicator found, falling back to Generic")
    return DetectedFramework(has_git=has_git, ci_provider=ci_provider)


def detect_ci_provider(snapshot: Snapshot) -> CIProvider | None:
    for indicator, provider in CI_INDICATORS:
        if snapshot.exists(indicator):
            return provider
    return None


def _refine_language(snapshot: Snapshot, language: Language) -> Language:
    if language is Language.JAVASCRIPT and snapshot.is_file("tsconfig.json"):
        return Language.TYPESCRIPT
    return language


def _lockfile_package_manager(snapshot: Snapshot) -> PackageManager | None:
    if snapshot.is_file("yarn.lock"):
        return PackageManager.YARN
    if snapshot.is_file("pnpm-lock.yaml"):
        return PackageManager.PNPM
    if snapshot.is_file("package-lock.json"):
        return PackageManager.NPM
    if snapshot.is_file("package.json"):
        return PackageManager.NPM
    return None


def _python_package_manager(snapshot: Snapshot) -> PackageManager:
    pyproject = snapshot.document("pyproject.toml") or {}
    if snapshot.is_file("poetry.lock") or _get(pyproject, "tool", "poetry") is not None:
        return PackageManager.POETRY
    return PackageManager.PIP


def _detect_version(snapshot: Snapshot, framework: Framework) -> str | None:
    """Best-effort version lookup; absence is not an error."""
    if framework is Framework.RUST_CARGO:
        value = _get(snapshot.document("Cargo.toml"), "package", "version")
    elif framework in (Framework.NODEJS, Framework.NEXTJS):
        value = _get(snapshot.document("package.json"), "version")
    elif framework is Framework.FLUTTER:
        value = _get(snapshot.document("pubspec.yaml"), "version")
    elif framework is Framework.PYTHON:
        pyproject = snapshot.document("pyproject.toml")
        value = _get(pyproject, "project", "version") or _get(
            pyproject, "tool", "poetry", "version"
        )
    elif framework in (Framework.SYMFONY, Framework.LARAVEL):
        value = _get(snapshot.document("composer.json"), "version")
    else:
        value = None
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _get(doc: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(doc, dict):
            return None
        doc = doc.get(key)
    return doc
