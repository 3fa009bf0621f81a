"""Data models for repository audit jobs."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

from auditor.models.audit import RepositoryAuditSnapshot
from auditor.vendors.catalog import AIVendor

JobStatus = Literal["queued", "running", "completed", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RepositoryAuditRequest(BaseModel):
    repository_url: str
    vendor: AIVendor
    model: str
    max_files: int = Field(ge=1)
    total_line_cap: int = Field(ge=1)
    api_key: str | None = Field(default=None, exclude=True, repr=False)


class RepositoryAuditJob(BaseModel):
    job_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    request: RepositoryAuditRequest
    status: JobStatus = "queued"
    file_order: list[str] = Field(default_factory=list)
    results: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    error: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def apply_snapshot(self, snapshot: RepositoryAuditSnapshot) -> None:
        """Replace the published progress with ``snapshot``."""
        payload = snapshot.to_dict()
        self.file_order = payload["file_order"]
        self.results = payload["results"]
        self.updated_at = _utcnow()

    def mark(self, status: JobStatus, *, error: str | None = None) -> None:
        self.status = status
        self.error = error
        self.updated_at = _utcnow()

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed")
