"""
Tests for Audit Logger — JSON-lines records for scans and fix batches.
"""

import json

from repodoctor.audit.logger import AuditLogger
from repodoctor.models.fix_models import FixFailure, FixPlan, FixReport
from repodoctor.models.scan_models import AuditEntry
from repodoctor.workers.scan_worker import build_fix_audit_entry


def _scan_entry(scan_id="s1"):
    return AuditEntry(
        scan_id=scan_id,
        root="/repo",
        framework="generic",
        files_scanned=2,
        issues_found=3,
        health_score=88,
        grade="B",
        ci_passed=False,
    )


def test_records_carry_event_and_timestamp(tmp_path):
    audit = AuditLogger(tmp_path / "logs" / "audit.jsonl")
    audit.log(_scan_entry())
    (record,) = audit.read_recent()
    assert record["event"] == "scan"
    assert record["timestamp"].endswith("Z")
    assert record["health_score"] == 88


def test_fix_batch_record(tmp_path):
    audit = AuditLogger(tmp_path / "audit.jsonl")
    plan = FixPlan(root="/repo", unfixable=["FLT-041"])
    report = FixReport(
        status="failed",
        failed=FixFailure(action_id="fix-2", path=".gitignore", reason="modified since the plan was made"),
        rolled_back=["fix-1"],
    )
    audit.log(build_fix_audit_entry("s1", plan, report))

    (record,) = audit.read_recent(event="fix_batch")
    assert record["scan_id"] == "s1"
    assert record["status"] == "failed"
    assert record["failed_action"] == "fix-2"
    assert record["failed_path"] == ".gitignore"
    assert record["rolled_back"] == ["fix-1"]
    assert record["unfixable"] == ["FLT-041"]


def test_read_recent_filters_and_limits(tmp_path):
    audit = AuditLogger(tmp_path / "audit.jsonl")
    for n in range(3):
        audit.log(_scan_entry(f"s{n}"))
    audit.log(build_fix_audit_entry("s2", FixPlan(root="/repo"), FixReport()))

    assert [r["scan_id"] for r in audit.read_recent(2)] == ["s2", "s2"]
    assert [r["scan_id"] for r in audit.read_recent(event="scan")] == ["s0", "s1", "s2"]
    assert audit.read_recent(0) == []


def test_malformed_lines_are_skipped(tmp_path):
    path = tmp_path / "audit.jsonl"
    path.write_text("not json\n\n" + json.dumps({"event": "scan", "scan_id": "ok"}) + "\n")
    assert [r["scan_id"] for r in AuditLogger(path).read_recent()] == ["ok"]


def test_missing_log_reads_empty(tmp_path):
    assert AuditLogger(tmp_path / "absent.jsonl").read_recent() == []


def test_write_failure_is_not_raised(tmp_path):
    # A directory cannot be opened for appending
    audit = AuditLogger(tmp_path)
    audit.log(_scan_entry())
    assert audit.read_recent() == []
