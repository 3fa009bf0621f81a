"""Single-file audits and the per-user audit history."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from auditor.audit_store import InMemoryAuditStore, report_filename
from auditor.config import Settings
from auditor.dependencies import (
    VendorClientFactory,
    audit_store_dependency,
    optional_user_dependency,
    required_user_dependency,
    settings_dependency,
    vendor_client_factory_dependency,
)
from auditor.logger import get_logger, log_timing, log_with_context
from auditor.services.single_audit import SingleFileAuditor
from auditor.vendors import UnknownVendorError, default_model, resolve_vendor

router = APIRouter()

logger = get_logger()


class CodeAuditRequest(BaseModel):
    source_code: str = Field(min_length=1)
    vendor: str | None = None
    model: str | None = None
    api_key: str | None = None


class CodeAuditResponse(BaseModel):
    vendor: str
    model: str
    result: Dict[str, Any]
    fallback: bool
    error: str | None = None
    audit_id: str | None = None


class AuditSummary(BaseModel):
    id: str
    created_at: str
    source_preview: str


SOURCE_PREVIEW_CHARS = 350


@router.post("/audits/code", response_model=CodeAuditResponse, summary="Audit pasted Solidity source")
async def audit_code(
    payload: CodeAuditRequest,
    settings: Settings = Depends(settings_dependency),
    store: InMemoryAuditStore = Depends(audit_store_dependency),
    client_factory: VendorClientFactory = Depends(vendor_client_factory_dependency),
    user_id: str | None = Depends(optional_user_dependency),
) -> CodeAuditResponse:
    """Audit one contract; failures return the sample result together with the error."""

    if not payload.source_code.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Source code is empty.")
    try:
        vendor = resolve_vendor(payload.vendor or settings.default_vendor)
    except UnknownVendorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    model = payload.model or default_model(vendor)

    ctx_logger = log_with_context(logger, vendor=vendor, model=model, user_id=user_id)
    credentials = settings.vendor_credentials().with_override(vendor, payload.api_key)
    client = client_factory(vendor, settings)
    try:
        with log_timing(ctx_logger, "single_file_audit"):
            outcome = await SingleFileAuditor(client, credentials, store=store).audit(
                payload.source_code, model=model, user_id=user_id
            )
    finally:
        await client.aclose()

    return CodeAuditResponse(
        vendor=vendor,
        model=model,
        result=outcome.result.to_dict(),
        fallback=outcome.fallback,
        error=outcome.error,
        audit_id=outcome.audit_id,
    )


@router.get("/audits", response_model=List[AuditSummary], summary="List the caller's past audits")
async def list_audits(
    user_id: str = Depends(required_user_dependency),
    store: InMemoryAuditStore = Depends(audit_store_dependency),
) -> List[AuditSummary]:
    summaries: List[AuditSummary] = []
    for record in store.list_for_user(user_id):
        preview = record.source_code[:SOURCE_PREVIEW_CHARS]
        if len(record.source_code) > SOURCE_PREVIEW_CHARS:
            preview += "..."
        summaries.append(
            AuditSummary(id=record.id, created_at=record.created_at.isoformat(), source_preview=preview)
        )
    return summaries


@router.get("/audits/{audit_id}/download", summary="Download a stored audit report")
async def download_audit(
    audit_id: str,
    user_id: str = Depends(required_user_dependency),
    store: InMemoryAuditStore = Depends(audit_store_dependency),
) -> Response:
    record = store.get(user_id, audit_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit not found.")
    body = json.dumps(record.to_dict(), indent=2)
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{report_filename()}"'},
    )
