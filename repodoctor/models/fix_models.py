"""
Fix Data Models — Planned filesystem mutations, plans and apply reports.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class FixActionKind(str, Enum):
    CREATE_DIRECTORY = "create_directory"
    CREATE_FILE = "create_file"
    APPEND_LINES = "append_lines"
    WRITE_FILE = "write_file"


class InverseAction(BaseModel):
    """How a FixAction is undone, shown in previews."""

    kind: Literal["remove_directory", "remove_file", "restore_content"]
    path: str
    description: str = ""


class FixAction(BaseModel):
    """One planned, previewable, reversible mutation of a single path."""

    id: str = Field(..., description="Stable action id within the plan, e.g. 'fix-1'")
    fixer: str
    kind: FixActionKind
    path: str = Field(..., description="Target path relative to the repository root")
    issue_ids: list[str] = Field(default_factory=list)
    description: str = ""
    content: str = Field(default="", description="Full content for create/write actions")
    lines: list[str] = Field(default_factory=list, description="Lines for append actions")
    expected_hash: str | None = Field(
        default=None,
        description="sha256 of the target at plan time; None when it did not exist",
    )
    diff: str = Field(default="", description="Unified diff preview")
    inverse: InverseAction | None = None


class FixPlan(BaseModel):
    """Ordered batch of FixActions for one invocation."""

    root: str
    actions: list[FixAction] = Field(default_factory=list)
    unfixable: list[str] = Field(
        default_factory=list, description="Auto-fixable issue ids no fixer handles"
    )
    conflicts: list[str] = Field(
        default_factory=list, description="Actions dropped because they clash on one path"
    )

    @property
    def is_empty(self) -> bool:
        return not self.actions


class FixFailure(BaseModel):
    action_id: str
    path: str
    reason: str


class FixReport(BaseModel):
    """Outcome of applying a FixPlan."""

    status: Literal["applied", "noop", "failed"] = "noop"
    applied: list[str] = Field(default_factory=list, description="Ids of actions that mutated")
    unchanged: list[str] = Field(
        default_factory=list, description="Ids of actions already satisfied"
    )
    failed: FixFailure | None = None
    rolled_back: list[str] = Field(default_factory=list)
    rollback_errors: list[str] = Field(default_factory=list)
    fixed_issue_ids: list[str] = Field(default_factory=list)
