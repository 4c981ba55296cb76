"""Audit logging for interface configuration changes.

Every mutating operation leaves one JSON line in a dedicated rotating
log, with the interface settings before and after the change.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# Dedicated audit logger
audit_logger = logging.getLogger("ifcraft.audit")

DEFAULT_AUDIT_DIR = Path.home() / ".ifcraft"


def setup_audit_logging(log_dir: Optional[Path] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.ifcraft/

    Returns:
        Path of the audit log file
    """
    log_dir = Path(log_dir) if log_dir else DEFAULT_AUDIT_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    audit_file = log_dir / "audit.log"

    audit_logger.setLevel(logging.INFO)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False

    return audit_file


@dataclass
class ChangeRecord:
    """Record of a configuration change."""
    timestamp: str
    interface: str
    operation: str  # init, set, delete
    user: str
    success: bool
    parameters: dict
    before_state: Optional[dict] = None
    after_state: Optional[dict] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log changes to one interface."""

    def __init__(self, interface: str, user: Optional[str] = None):
        self.interface = interface
        self.user = user or os.environ.get("USER", "system")
        self._snapshots: dict[str, Any] = {}

    def snapshot(self, name: str, state: Any) -> None:
        """Capture a state snapshot (e.g. "before")."""
        self._snapshots[name] = state

    def get_snapshot(self, name: str) -> Optional[Any]:
        return self._snapshots.get(name)

    def log_change(
        self,
        operation: str,
        parameters: dict,
        success: bool,
        error: Optional[str] = None,
        after_state: Optional[dict] = None,
    ) -> ChangeRecord:
        """Log a configuration change.

        The "before" snapshot, if one was taken, becomes ``before_state``.
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            interface=self.interface,
            operation=operation,
            user=self.user,
            success=success,
            parameters=parameters,
            before_state=self.get_snapshot("before"),
            after_state=after_state,
            error=error,
        )

        audit_logger.info(record.to_json())
        return record


def get_recent_changes(
    log_file: Optional[Path] = None,
    interface: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.ifcraft/audit.log
        interface: Filter by interface name
        operation: Filter by operation
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    log_file = Path(log_file) if log_file else DEFAULT_AUDIT_DIR / "audit.log"
    if not log_file.exists():
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

            if interface and record.interface != interface:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
