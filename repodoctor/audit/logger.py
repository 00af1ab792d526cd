"""
Audit Logger — Structured JSON-lines audit trail.

Two record kinds share one file, told apart by "event":
  scan       root, framework, files scanned, issues, health score, CI
             verdict, analyzer outcomes and duration
  fix_batch  the scan it was planned from, status, applied / unchanged /
             rolled-back action ids and the failing action, if any
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from repodoctor.config import settings
from repodoctor.models.scan_models import AuditEntry, FixAuditEntry

logger = logging.getLogger("repodoctor.audit")


class AuditLogger:
    """Appends scan and fix-batch records to a JSON-lines file."""

    def __init__(self, log_path: str | Path | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry | FixAuditEntry) -> None:
        """Append one record. Write failures are logged, never raised."""
        record = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            **entry.model_dump(mode="json"),
        }
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, sort_keys=True) + "\n")
        except OSError as e:
            logger.error(f"Failed to write {entry.event} audit record for {entry.scan_id}: {e}")

    def read_recent(self, count: int = 50, event: str | None = None) -> list[dict]:
        """The last `count` records, oldest first, optionally of one event kind."""
        try:
            with open(self.log_path, encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Cannot read audit log {self.log_path}: {e}")
            return []

        records: list[dict] = []
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"Skipping malformed audit line {number}")
                continue
            if event is None or record.get("event") == event:
                records.append(record)
        return records[-count:] if count > 0 else []
