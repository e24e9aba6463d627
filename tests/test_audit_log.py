"""Tests for the intent audit log."""
import logging

import pytest

from mcp_ifsync.reconcile.schema import Intent
from mcp_ifsync.utils.audit_log import (
    AuditTrail,
    ChangeRecord,
    audit_logger,
    get_audit_file,
    get_recent_changes,
    setup_audit_logging,
)


@pytest.fixture
def audit_dir(tmp_path):
    setup_audit_logging(str(tmp_path))
    yield tmp_path
    for handler in list(audit_logger.handlers):
        handler.close()
        audit_logger.removeHandler(handler)
    audit_logger.propagate = True


class TestAuditTrail:
    """Tests for AuditTrail and get_recent_changes."""

    def test_records_are_written(self, audit_dir):
        trail = AuditTrail("core-r1", "Gi1", user="alice", context="test")
        trail.log_intent(Intent("interface.enable", "R1", {"interface": "Gi1"}), success=True)
        trail.log_intent(
            Intent("interface.set_mtu", "R1", {"interface": "Gi1", "mtu": 9000}),
            success=False,
            error="device rejected",
        )

        records = get_recent_changes(str(audit_dir / "audit.log"))
        assert [r.intent for r in records] == ["interface.set_mtu", "interface.enable"]
        assert records[0].success is False
        assert records[0].error == "device rejected"
        assert records[1].user == "alice"
        assert records[1].node_id == "R1"
        assert records[1].parameters == {"interface": "Gi1"}
        assert len(trail.records) == 2

    def test_filters_and_limit(self, audit_dir):
        for device, interface in (("r1", "Gi1"), ("r1", "Gi2"), ("r2", "Gi1")):
            AuditTrail(device, interface).log_intent(
                Intent("interface.enable", device, {"interface": interface}), success=True
            )

        log_file = str(audit_dir / "audit.log")
        assert len(get_recent_changes(log_file, device_id="r1")) == 2
        assert len(get_recent_changes(log_file, interface="Gi1")) == 2
        assert get_recent_changes(log_file, intent="interface.disable") == []
        latest = get_recent_changes(log_file, limit=1)
        assert [(r.device_id, r.interface) for r in latest] == [("r2", "Gi1")]

    def test_dry_run_flag(self, audit_dir):
        AuditTrail("r1", "Gi1").log_intent(
            Intent("interface.disable", "r1", {"interface": "Gi1"}), success=True, dry_run=True
        )
        record = get_recent_changes(str(audit_dir / "audit.log"))[0]
        assert record.dry_run is True
        assert record.user == "system"

    def test_malformed_lines_skipped(self, tmp_path):
        log_file = tmp_path / "audit.log"
        record = ChangeRecord(
            timestamp="2024-01-01T00:00:00+00:00",
            device_id="r1",
            node_id="R1",
            interface="Gi1",
            intent="interface.enable",
            user="system",
            dry_run=False,
            success=True,
        )
        log_file.write_text("not json\n\n" + record.to_json() + "\n")
        assert get_recent_changes(str(log_file)) == [record]

    def test_missing_file(self, tmp_path):
        assert get_recent_changes(str(tmp_path / "nope.log")) == []


class TestAuditFile:
    """Tests for audit file resolution."""

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IFSYNC_AUDIT_DIR", str(tmp_path))
        assert get_audit_file() == str(tmp_path / "audit.log")

    def test_explicit_dir(self, tmp_path):
        assert get_audit_file(str(tmp_path)) == str(tmp_path / "audit.log")

    def test_setup_creates_directory(self, tmp_path):
        log_dir = tmp_path / "nested" / "audit"
        setup_audit_logging(str(log_dir))
        try:
            assert log_dir.is_dir()
            assert audit_logger.level == logging.INFO
        finally:
            for handler in list(audit_logger.handlers):
                handler.close()
                audit_logger.removeHandler(handler)
            audit_logger.propagate = True
