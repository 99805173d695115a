"""
Audit ledger — append-only record of every reconciliation run.

Each run appends one NDJSON line to ``<state_dir>/audit.ndjson``:
which suite ran against which host, whether fixes were requested,
and how the report came out. Entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from easygce.core.models.check import CapabilityState
from easygce.core.models.report import Report

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    suite: str = ""

    project: str = ""
    host: str = ""
    zone: str = ""
    auto_fix: bool = False

    status: str = ""               # ok, partial, failed
    checks_total: int = 0
    checks_present: int = 0
    checks_remediated: int = 0
    duration_ms: int = 0

    missing: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(cls, report: Report, duration_ms: int = 0) -> AuditEntry:
        target = report.target
        return cls(
            operation_id=report.operation_id,
            suite=report.suite,
            project=target.project if target else "",
            host=target.name if target else "",
            zone=target.zone if target else "",
            auto_fix=report.auto_fix,
            status=report.status,
            checks_total=report.total,
            checks_present=report.present,
            checks_remediated=report.remediated,
            duration_ms=duration_ms,
            missing=[r.name for r in report.results if r.state == CapabilityState.MISSING],
            errors=[r.name for r in report.results if r.state == CapabilityState.ERROR],
        )


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is not None:
            self._path = path
        elif state_dir is not None:
            self._path = state_dir / DEFAULT_AUDIT_FILE
        else:
            self._path = Path.home() / ".easygce" / DEFAULT_AUDIT_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry to the ledger.

        Failing to write the ledger is logged, never raised: a run's
        report matters more than its bookkeeping.
        """
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.suite, entry.operation_id)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries from the ledger, oldest first."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """Read the most recent N entries."""
        return self.read_all()[-n:] if n > 0 else []
