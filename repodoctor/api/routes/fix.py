"""
Fix Routes — POST /fix/preview and POST /fix/apply

Both rescan the repository first so the plan is built against the
current tree. Preview never writes; apply is all-or-nothing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from repodoctor.api.dependencies import get_audit_logger, get_scan_worker
from repodoctor.audit.logger import AuditLogger
from repodoctor.models.scan_models import FixApplyResponse, FixPreviewResponse, FixRequest
from repodoctor.workers.scan_worker import ScanWorker, build_audit_entry, build_fix_audit_entry

logger = logging.getLogger("repodoctor.api.fix")

router = APIRouter(prefix="/fix")


async def _plan(request: FixRequest, worker: ScanWorker, audit: AuditLogger):
    result, project = await worker.scan_project(
        request.root,
        preset=request.preset,
        overrides=request.overrides or None,
        ignore_paths=request.ignore_paths,
        use_repo_config=request.use_repo_config,
    )
    audit.log(build_audit_entry(result))
    return result, worker.plan_fixes(result.issues, project, only=request.only)


@router.post("/preview", response_model=FixPreviewResponse)
async def fix_preview(
    request: FixRequest,
    worker: ScanWorker = Depends(get_scan_worker),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Dry run: the plan and its unified diff."""
    result, plan = await _plan(request, worker, audit)
    return FixPreviewResponse(scan_id=result.scan_id, plan=plan, diff=worker.preview(plan))


@router.post("/apply", response_model=FixApplyResponse)
async def fix_apply(
    request: FixRequest,
    worker: ScanWorker = Depends(get_scan_worker),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Apply the plan; on any failure every applied action is rolled back."""
    result, plan = await _plan(request, worker, audit)
    report = await worker.apply_fixes(plan)
    audit.log(build_fix_audit_entry(result.scan_id, plan, report))
    if report.status == "failed":
        logger.warning(f"[{result.scan_id}] Fix batch rolled back: {report.failed}")
    return FixApplyResponse(
        message="fix_failed" if report.status == "failed" else "fix_complete",
        scan_id=result.scan_id,
        plan=plan,
        report=report,
    )
