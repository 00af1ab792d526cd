"""
Test fixtures shared across all RepoDoctor tests.
"""

from pathlib import Path

import pytest

from repodoctor.core.project import Project
from repodoctor.core.ruleset import resolve_ruleset


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files (and their parents) under root; a trailing '/' creates a directory."""
    for rel, content in files.items():
        target = root / rel
        if rel.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_repo(tmp_path):
    """Factory building a repository tree inside tmp_path."""

    def _make(files: dict[str, str], name: str = "repo") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        return write_tree(root, files)

    return _make


@pytest.fixture
def load_project():
    def _load(root: Path, ignore_globs=()) -> Project:
        return Project.load(root, ignore_globs)

    return _load


@pytest.fixture
def balanced_ruleset():
    return resolve_ruleset("balanced")


@pytest.fixture
def permissive_ruleset():
    """Everything reported, nothing ignored."""
    return resolve_ruleset(
        "balanced",
        cli_overrides={"severity_threshold": "info"},
    )


@pytest.fixture
def weak_repo_files():
    """No README, no .gitignore and a hard-coded password."""
    return {
        "config.php": '<?php\n$config = [];\n$password = "abc123";\n',
        "src/index.php": "<?php\necho 'hello';\n",
    }


@pytest.fixture
def healthy_python_files():
    readme = "\n".join(
        [
            "# Demo",
            "",
            "A small demo package.",
            "",
            "## Installation",
            "",
            "pip install demo",
            "",
            "## Usage",
            "",
            "import demo",
        ]
    )
    return {
        "README.md": readme + "\n",
        "LICENSE": "MIT License\n\nPermission is hereby granted, free of charge, to any person.\n",
        "CONTRIBUTING.md": "Open a pull request.\n",
        "CODE_OF_CONDUCT.md": "Be kind.\n",
        ".gitignore": "__pycache__/\n.env\n",
        ".editorconfig": "root = true\n",
        "pyproject.toml": '[project]\nname = "demo"\ndependencies = ["requests==2.31.0"]\n\n'
        "[tool.pytest.ini_options]\naddopts = \"-q\"\n",
        "src/demo/core.py": "def add(a, b):\n    return a + b\n",
        "tests/test_core.py": "def test_add():\n    assert 1 + 1 == 2\n",
    }
