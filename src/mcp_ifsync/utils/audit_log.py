"""Audit logging for interface configuration changes.

Every intent sent to a device (or previewed in dry-run) is written as one
JSON line to a dedicated, rotating audit log.
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..reconcile.schema import Intent

# Dedicated audit logger
audit_logger = logging.getLogger("ifsync.audit")

DEFAULT_AUDIT_DIR = "~/.ifsync"


def get_audit_file(log_dir: Optional[str] = None) -> str:
    """Resolve the audit log path (IFSYNC_AUDIT_DIR overrides the default)."""
    if log_dir is None:
        log_dir = os.environ.get("IFSYNC_AUDIT_DIR", DEFAULT_AUDIT_DIR)
    return os.path.join(os.path.expanduser(log_dir), "audit.log")


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.ifsync/
    """
    audit_file = get_audit_file(log_dir)
    Path(audit_file).parent.mkdir(parents=True, exist_ok=True)

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # JSON lines, one record per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """Record of one intent sent to a device."""
    timestamp: str
    device_id: str
    node_id: str
    interface: str
    intent: str
    user: str
    dry_run: bool
    success: bool
    parameters: dict = field(default_factory=dict)
    context: str = ""
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class AuditTrail:
    """Audit writer bound to one reconciliation run."""

    def __init__(
        self,
        device_id: str,
        interface: str,
        user: Optional[str] = None,
        context: str = "",
    ):
        self.device_id = device_id
        self.interface = interface
        self.user = user or "system"
        self.context = context
        self.records: list[ChangeRecord] = []

    def log_intent(
        self,
        intent: "Intent",
        success: bool,
        error: Optional[str] = None,
        dry_run: bool = False,
    ) -> ChangeRecord:
        """Log the outcome of one intent.

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            node_id=intent.node_id,
            interface=self.interface,
            intent=intent.name,
            user=self.user,
            dry_run=dry_run,
            success=success,
            parameters=dict(intent.params),
            context=self.context,
            error=error,
        )

        audit_logger.info(record.to_json())
        self.records.append(record)

        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    interface: Optional[str] = None,
    intent: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.ifsync/audit.log
        device_id: Filter by device ID
        interface: Filter by interface name
        intent: Filter by intent name
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = get_audit_file()

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if device_id and record.device_id != device_id:
                continue
            if interface and record.interface != interface:
                continue
            if intent and record.intent != intent:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
