"""
Project Data Models — Framework detection result.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Framework(str, Enum):
    SYMFONY = "symfony"
    LARAVEL = "laravel"
    FLUTTER = "flutter"
    NEXTJS = "nextjs"
    RUST_CARGO = "rust_cargo"
    NODEJS = "nodejs"
    PYTHON = "python"
    GENERIC = "generic"

    @property
    def display_name(self) -> str:
        return FRAMEWORK_DISPLAY_NAMES[self]


FRAMEWORK_DISPLAY_NAMES: dict[Framework, str] = {
    Framework.SYMFONY: "Symfony",
    Framework.LARAVEL: "Laravel",
    Framework.FLUTTER: "Flutter",
    Framework.NEXTJS: "Next.js",
    Framework.RUST_CARGO: "Rust/Cargo",
    Framework.NODEJS: "Node.js",
    Framework.PYTHON: "Python",
    Framework.GENERIC: "Generic",
}


class Language(str, Enum):
    RUST = "rust"
    PHP = "php"
    DART = "dart"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    UNKNOWN = "unknown"


class PackageManager(str, Enum):
    CARGO = "cargo"
    COMPOSER = "composer"
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    PIP = "pip"
    POETRY = "poetry"
    PUB = "pub"


class CIProvider(str, Enum):
    GITHUB_ACTIONS = "github_actions"
    GITLAB_CI = "gitlab_ci"
    CIRCLECI = "circleci"
    TRAVIS = "travis"
    JENKINS = "jenkins"
    BITBUCKET = "bitbucket"


class DetectedFramework(BaseModel):
    """Result of framework detection, produced once per scan."""

    model_config = {"frozen": True}

    framework: Framework = Framework.GENERIC
    language: Language = Language.UNKNOWN
    version: str | None = None
    package_manager: PackageManager | None = None
    indicator: str | None = None
    has_git: bool = False
    ci_provider: CIProvider | None = None
