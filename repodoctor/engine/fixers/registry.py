"""
Fixer Registry — The closed set of fixers, in matching order.
"""

from __future__ import annotations

from repodoctor.engine.fixers.base import Fixer
from repodoctor.engine.fixers.debug_flag import DebugFlagFixer
from repodoctor.engine.fixers.directory import DirectoryFixer
from repodoctor.engine.fixers.editorconfig import EditorConfigFixer
from repodoctor.engine.fixers.gitignore import GitignoreFixer

FIXER_REGISTRY: dict[str, Fixer] = {
    fixer.name: fixer
    for fixer in (
        DirectoryFixer(),
        GitignoreFixer(),
        EditorConfigFixer(),
        DebugFlagFixer(),
    )
}


def fixer_for_issue(issue, fixers: list[Fixer] | None = None) -> Fixer | None:
    """First fixer that can fix the issue."""
    for fixer in fixers if fixers is not None else FIXER_REGISTRY.values():
        if fixer.can_fix(issue):
            return fixer
    return None
