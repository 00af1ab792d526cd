"""
Scan Request/Response Models — API contract schemas.

These are the public-facing Pydantic models used by the scan worker and the
FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from repodoctor.models.fix_models import FixPlan, FixReport
from repodoctor.models.issue_models import Issue
from repodoctor.models.project_models import DetectedFramework
from repodoctor.models.score_models import HealthScore


class ScanRequest(BaseModel):
    """Request body for /scan and the /fix endpoints."""

    root: str = Field(..., description="Repository root to scan")
    preset: str | None = Field(default=None, description="Named preset, default from settings")
    overrides: dict[str, Any] = Field(
        default_factory=dict,
        description="Ruleset overrides, same schema as .repodoctor.yml",
    )
    ignore_paths: list[str] = Field(
        default_factory=list, description="Globs excluded from the snapshot"
    )
    use_repo_config: bool = Field(
        default=True, description="Read .repodoctor.yml from the repository root"
    )


class FixRequest(ScanRequest):
    only: list[str] | None = Field(
        default=None, description="Optional: only fix these rule ids"
    )


class ScanResult(BaseModel):
    """Everything report generators and CI gating consume."""

    scan_id: str
    root: str
    framework: DetectedFramework
    issues: list[Issue] = Field(default_factory=list)
    health_score: HealthScore
    duration_ms: float = 0.0
    preset: str = ""
    files_scanned: int = 0
    analyzers_run: list[str] = Field(default_factory=list)
    timed_out: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    ci_passed: bool = True


class AuditEntry(BaseModel):
    """Audit metadata for a scan."""

    event: Literal["scan"] = "scan"
    scan_id: str
    root: str
    framework: str
    files_scanned: int
    issues_found: int
    health_score: int
    grade: str
    ci_passed: bool
    analyzers_run: list[str] = Field(default_factory=list)
    timed_out: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0


class FixAuditEntry(BaseModel):
    """Audit metadata for one fix batch, linked to the scan it was planned from."""

    event: Literal["fix_batch"] = "fix_batch"
    scan_id: str
    root: str
    status: str
    actions_planned: int
    applied: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    failed_action: str | None = None
    failed_path: str | None = None
    failed_reason: str | None = None
    rolled_back: list[str] = Field(default_factory=list)
    rollback_errors: list[str] = Field(default_factory=list)
    fixed_issue_ids: list[str] = Field(default_factory=list)
    unfixable: list[str] = Field(default_factory=list)


class ScanResponse(BaseModel):
    """Top-level response for the scan endpoint."""

    message: str = "scan_complete"
    scan_id: str = ""
    result: ScanResult | None = None


class FixPreviewResponse(BaseModel):
    message: str = "fix_preview"
    scan_id: str = ""
    plan: FixPlan | None = None
    diff: str = ""


class FixApplyResponse(BaseModel):
    message: str = "fix_complete"
    scan_id: str = ""
    plan: FixPlan | None = None
    report: FixReport | None = None
