"""Audit a single pasted Solidity contract."""

from __future__ import annotations

from dataclasses import dataclass

from auditor.audit_store import InMemoryAuditStore
from auditor.logger import get_logger, log_failure, log_success, log_with_context
from auditor.models.audit import FALLBACK_AUDIT_RESULT, AuditResult
from auditor.services.result_parser import UnparsableResponseError
from auditor.vendors import VendorAPIError, VendorAuditClient, VendorCredentials, default_model

logger = get_logger()


@dataclass(frozen=True, slots=True)
class SingleAuditOutcome:
    result: AuditResult
    error: str | None = None
    audit_id: str | None = None

    @property
    def fallback(self) -> bool:
        return self.error is not None


class SingleFileAuditor:
    """Run one vendor audit, substituting the fallback result on any failure.

    Only genuine vendor results are persisted, and only when a user id is
    supplied.
    """

    def __init__(
        self,
        client: VendorAuditClient,
        credentials: VendorCredentials,
        *,
        store: InMemoryAuditStore | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._store = store

    async def audit(self, source_code: str, *, model: str | None = None, user_id: str | None = None) -> SingleAuditOutcome:
        vendor = self._client.vendor
        model = model or default_model(vendor)
        ctx_logger = log_with_context(logger, vendor=vendor, model=model, user_id=user_id)

        api_key = self._credentials.get(vendor)
        if not api_key:
            ctx_logger.warning("No API key configured; returning sample result")
            return SingleAuditOutcome(
                result=FALLBACK_AUDIT_RESULT,
                error=f"No API key set for {vendor}. Provide one for live auditing.",
            )

        try:
            result = await self._client.audit(source_code, api_key, model)
        except (VendorAPIError, UnparsableResponseError) as exc:
            log_failure(logger, f"{vendor} audit failed", exc, vendor=vendor, model=model)
            return SingleAuditOutcome(result=FALLBACK_AUDIT_RESULT, error=f"{vendor} Error: {exc}")

        audit_id = None
        if user_id and self._store is not None:
            audit_id = self._store.save(user_id, source_code, result.to_dict()).id

        log_success(
            logger,
            f"{vendor} audit returned {len(result.vulnerabilities)} vulnerabilities",
            vendor=vendor,
            model=model,
        )
        return SingleAuditOutcome(result=result, audit_id=audit_id)
