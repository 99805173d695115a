"""
Tests for persistence — the append-only audit ledger.
"""

from pathlib import Path

from easygce.core.models.check import CapabilityState
from easygce.core.models.report import CheckResult, Report
from easygce.core.models.target import Target
from easygce.core.persistence.audit import AuditEntry, AuditWriter


def _report() -> Report:
    return Report(
        operation_id="op-1",
        suite="remote-desktop",
        target=Target(project="p", name="vm", zone="z"),
        results=[
            CheckResult(name="ssh-reachable", state=CapabilityState.PRESENT),
            CheckResult(name="xrdp-active", state=CapabilityState.MISSING),
            CheckResult(name="tightvnc-active", state=CapabilityState.ERROR, error="timeout"),
        ],
    )


class TestAuditEntry:
    def test_from_report(self):
        entry = AuditEntry.from_report(_report(), duration_ms=1200)
        assert entry.operation_id == "op-1"
        assert entry.project == "p"
        assert entry.host == "vm"
        assert entry.status == "partial"
        assert entry.checks_total == 3
        assert entry.checks_present == 1
        assert entry.missing == ["xrdp-active"]
        assert entry.errors == ["tightvnc-active"]
        assert entry.duration_ms == 1200


class TestAuditWriter:
    def test_write_and_read(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(AuditEntry.from_report(_report()))
        entries = writer.read_all()
        assert len(entries) == 1
        assert entries[0].suite == "remote-desktop"
        assert writer.path == tmp_state_dir / "audit.ndjson"

    def test_append_only(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "ledger.ndjson")
        for i in range(3):
            writer.write(AuditEntry(operation_id=f"op-{i}"))
        lines = (tmp_path / "ledger.ndjson").read_text().splitlines()
        assert len(lines) == 3
        assert [e.operation_id for e in writer.read_all()] == ["op-0", "op-1", "op-2"]

    def test_creates_parent_dirs(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "a" / "b" / "audit.ndjson")
        writer.write(AuditEntry())
        assert writer.path.is_file()

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(operation_id=f"op-{i}"))
        assert [e.operation_id for e in writer.read_recent(2)] == ["op-3", "op-4"]
        assert writer.read_recent(0) == []

    def test_missing_ledger(self, tmp_path: Path):
        assert AuditWriter(path=tmp_path / "none.ndjson").read_all() == []

    def test_skips_corrupt_lines(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path=path)
        writer.write(AuditEntry(operation_id="good"))
        with path.open("a") as f:
            f.write("{not json\n\n")
        writer.write(AuditEntry(operation_id="also-good"))
        assert [e.operation_id for e in writer.read_all()] == ["good", "also-good"]
