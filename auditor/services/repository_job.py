"""Queue job processor for repository audits."""

from __future__ import annotations

from typing import Callable

from auditor.config import Settings, SettingsError, get_settings
from auditor.github_client import GitHubRepositoryClient, RepositoryListingError
from auditor.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from auditor.models.audit import AuditResult
from auditor.queue.models import RepositoryAuditJob
from auditor.services.repository_audit import RepositoryAuditError, RepositoryAuditPipeline
from auditor.vendors import VendorAPIError, VendorAuditClient, create_vendor_client

logger = get_logger()


def _default_github_client(settings: Settings) -> GitHubRepositoryClient:
    return GitHubRepositoryClient(
        base_url=settings.normalized_github_api_base_url,
        raw_base_url=settings.normalized_github_raw_base_url,
        token=settings.github_token,
        timeout=settings.http_timeout,
    )


def _default_vendor_client(vendor: str, settings: Settings) -> VendorAuditClient:
    return create_vendor_client(vendor, timeout=settings.vendor_timeout)


class RepositoryAuditProcessor:
    """Runs the audit pipeline for one queued job and records its progress on the job."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        github_client_factory: Callable[[Settings], GitHubRepositoryClient] | None = None,
        vendor_client_factory: Callable[[str, Settings], VendorAuditClient] | None = None,
    ) -> None:
        self._settings = settings
        self._github_client_factory = github_client_factory or _default_github_client
        self._vendor_client_factory = vendor_client_factory or _default_vendor_client

    async def __call__(self, job: RepositoryAuditJob) -> None:
        request = job.request
        ctx_logger = log_with_context(logger, job_id=job.job_id, repository=request.repository_url)
        ctx_logger.info("=== PROCESSOR: Starting repository audit ===")

        try:
            settings = self._settings or get_settings()
        except SettingsError as exc:  # pragma: no cover - configuration guard
            log_failure(logger, "Configuration invalid", exc, job_id=job.job_id)
            job.mark("failed", error=f"Configuration error: {exc}")
            return

        credentials = settings.vendor_credentials().with_override(request.vendor, request.api_key)
        api_key = credentials.get(request.vendor)
        if not api_key:
            ctx_logger.warning(f"No API key set for {request.vendor}; every file will get the sample result")

        github_client = self._github_client_factory(settings)
        vendor_client = self._vendor_client_factory(request.vendor, settings)

        async def audit_one(source_code: str) -> AuditResult:
            if not api_key:
                raise VendorAPIError(f"No API key set for {request.vendor}.", request.vendor)
            return await vendor_client.audit(source_code, api_key, request.model)

        try:
            pipeline = RepositoryAuditPipeline(github_client)
            with log_timing(ctx_logger, "repository_audit"):
                snapshot = await pipeline.run(
                    request.repository_url,
                    max_files=request.max_files,
                    total_line_cap=request.total_line_cap,
                    audit_one=audit_one,
                    on_snapshot=job.apply_snapshot,
                )
        except (RepositoryListingError, RepositoryAuditError) as exc:
            log_failure(logger, f"Repository audit stopped: {exc}", exc, job_id=job.job_id)
            job.mark("failed", error=str(exc))
            return
        finally:
            await vendor_client.aclose()
            await github_client.aclose()
            ctx_logger.debug("HTTP clients closed")

        job.apply_snapshot(snapshot)
        job.mark("completed")
        log_success(
            logger,
            f"Repository audit completed ({len(snapshot.results)}/{len(snapshot.file_order)} files audited)",
            job_id=job.job_id,
            repository=request.repository_url,
        )
