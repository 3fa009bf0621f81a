"""Per-user storage of completed single-file audits."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from auditor.logger import get_logger

logger = get_logger()

REPORT_FILENAME_PREFIX = "solidity-audit-report"


@dataclass(frozen=True, slots=True)
class AuditRecord:
    id: str
    user_id: str
    source_code: str
    report: Dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "source_code": self.source_code,
            "report": self.report,
            "created_at": self.created_at.isoformat(),
        }


def report_filename(now: datetime | None = None) -> str:
    """Return the download file name for an audit report, stamped with ``now``."""

    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return f"{REPORT_FILENAME_PREFIX}-{stamp}.json"


class InMemoryAuditStore:
    """Process-local audit store keyed by opaque user identity."""

    def __init__(self) -> None:
        self._records: Dict[str, List[AuditRecord]] = {}

    def save(self, user_id: str, source_code: str, report: Dict[str, Any]) -> AuditRecord:
        if not user_id:
            raise ValueError("Cannot save an audit without a user id.")
        record = AuditRecord(id=uuid.uuid4().hex, user_id=user_id, source_code=source_code, report=report)
        self._records.setdefault(user_id, []).append(record)
        logger.debug(f"Stored audit {record.id} for user {user_id}")
        return record

    def list_for_user(self, user_id: str) -> List[AuditRecord]:
        """Return the user's audits, newest first."""
        records = reversed(self._records.get(user_id, []))
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def get(self, user_id: str, audit_id: str) -> AuditRecord | None:
        for record in self._records.get(user_id, []):
            if record.id == audit_id:
                return record
        return None

    def clear(self) -> None:
        self._records.clear()
