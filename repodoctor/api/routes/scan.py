"""
Scan Route — POST /scan

Scans a repository root and returns issues, health score and CI verdict.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from repodoctor.api.dependencies import get_audit_logger, get_scan_worker
from repodoctor.audit.logger import AuditLogger
from repodoctor.models.scan_models import ScanRequest, ScanResponse
from repodoctor.workers.scan_worker import ScanWorker, build_audit_entry

logger = logging.getLogger("repodoctor.api.scan")

router = APIRouter()


@router.post("/scan", response_model=ScanResponse)
async def scan(
    request: ScanRequest,
    worker: ScanWorker = Depends(get_scan_worker),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """
    Full repository scan.

    ConfigError and FsError propagate to the application's exception
    handlers (422 / 400) and name the offending key or path.
    """
    result = await worker.scan(
        request.root,
        preset=request.preset,
        overrides=request.overrides or None,
        ignore_paths=request.ignore_paths,
        use_repo_config=request.use_repo_config,
    )
    audit.log(build_audit_entry(result))
    return ScanResponse(scan_id=result.scan_id, result=result)
