"""Background repository audits."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from auditor.config import Settings
from auditor.dependencies import settings_dependency
from auditor.github_client import InvalidReferenceError, parse_repository_reference
from auditor.logger import get_logger, log_failure, log_with_context
from auditor.queue import get_audit_job, submit_audit_job
from auditor.queue.models import JobStatus, RepositoryAuditRequest
from auditor.vendors import UnknownVendorError, default_model, resolve_vendor

router = APIRouter()

logger = get_logger()


class RepositoryAuditBody(BaseModel):
    repository_url: str
    vendor: str | None = None
    model: str | None = None
    api_key: str | None = None
    max_files: int | None = Field(default=None, ge=1)


class JobAccepted(BaseModel):
    job_id: str
    status: JobStatus


class JobState(BaseModel):
    job_id: str
    status: JobStatus
    repository_url: str
    vendor: str
    model: str
    file_order: List[str]
    results: Dict[str, Dict[str, Any]]
    error: str | None = None


@router.post(
    "/audits/repository",
    response_model=JobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue an audit of a public GitHub repository",
)
async def submit_repository_audit(
    payload: RepositoryAuditBody,
    settings: Settings = Depends(settings_dependency),
) -> JobAccepted:
    """Validate the repository URL up front, then audit it in the background."""

    try:
        reference = parse_repository_reference(payload.repository_url)
    except InvalidReferenceError as exc:
        log_failure(logger, "Rejected repository audit request", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    try:
        vendor = resolve_vendor(payload.vendor or settings.default_vendor)
    except UnknownVendorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    request = RepositoryAuditRequest(
        repository_url=payload.repository_url.strip(),
        vendor=vendor,
        model=payload.model or default_model(vendor),
        max_files=payload.max_files or settings.max_files,
        total_line_cap=settings.total_line_cap,
        api_key=payload.api_key,
    )
    job = await submit_audit_job(request)
    log_with_context(logger, job_id=job.job_id, repository=reference.full_name).info(
        f"Repository audit queued (vendor={vendor}, max_files={request.max_files})"
    )
    return JobAccepted(job_id=job.job_id, status=job.status)


@router.get("/audits/repository/{job_id}", response_model=JobState, summary="Poll a repository audit")
async def get_repository_audit(job_id: str) -> JobState:
    """Return the latest published progress; results fill in file by file."""

    job = get_audit_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit job not found.")
    return JobState(
        job_id=job.job_id,
        status=job.status,
        repository_url=job.request.repository_url,
        vendor=job.request.vendor,
        model=job.request.model,
        file_order=list(job.file_order),
        results=dict(job.results),
        error=job.error,
    )
