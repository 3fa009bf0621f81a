"""In-memory queue for background repository audits."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict

from auditor.logger import get_logger, log_failure, log_timing, log_with_context

from .models import RepositoryAuditJob, RepositoryAuditRequest

logger = get_logger()

AuditJobHandler = Callable[[RepositoryAuditJob], Awaitable[None]]

JOB_TTL_SECONDS = 60 * 60  # finished jobs stay pollable for one hour


class _AuditQueue:
    def __init__(self) -> None:
        self._queue: asyncio.Queue[RepositoryAuditJob] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._handler: AuditJobHandler | None = None
        self._jobs: Dict[str, RepositoryAuditJob] = {}

    def configure_handler(self, handler: AuditJobHandler | None) -> None:
        self._handler = handler

    def _ensure_worker(self) -> asyncio.Queue[RepositoryAuditJob]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            loop = asyncio.get_running_loop()
            self._worker = loop.create_task(self._worker_loop(self._queue))
        return self._queue

    async def _worker_loop(self, queue: asyncio.Queue[RepositoryAuditJob]) -> None:
        while True:
            job = await queue.get()
            start_time = time.time()
            ctx_logger = log_with_context(logger, job_id=job.job_id, repository=job.request.repository_url)
            ctx_logger.info("=== QUEUE: Job processing started ===")

            try:
                if self._handler is None:
                    job.mark("failed", error="No audit handler configured.")
                    log_failure(logger, "No audit job handler configured; dropping job", job_id=job.job_id)
                else:
                    job.mark("running")
                    with log_timing(ctx_logger, "process_audit_job"):
                        await self._handler(job)
                    processing_time = time.time() - start_time
                    ctx_logger.info(f"=== QUEUE: Job finished as {job.status} in {processing_time:.3f}s ===")
            except Exception as exc:  # pragma: no cover - defensive logging
                job.mark("failed", error=f"Unexpected error: {exc}")
                log_failure(logger, "Unhandled exception while processing job", exc, job_id=job.job_id)
                logger.exception("Full exception traceback:")
            finally:
                queue.task_done()

    def _prune(self, now: float) -> None:
        expiry_threshold = now - JOB_TTL_SECONDS
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.finished and job.updated_at.timestamp() < expiry_threshold
        ]
        for job_id in expired:
            self._jobs.pop(job_id, None)

    async def enqueue(self, job: RepositoryAuditJob) -> None:
        self._prune(time.time())
        self._jobs[job.job_id] = job
        await self._ensure_worker().put(job)

    def get(self, job_id: str) -> RepositoryAuditJob | None:
        return self._jobs.get(job_id)

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:  # pragma: no cover - expected during shutdown
            pass
        finally:
            self._worker = None
            self._queue = None

    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def reset(self) -> None:
        self._jobs.clear()


_QUEUE = _AuditQueue()


async def submit_audit_job(request: RepositoryAuditRequest) -> RepositoryAuditJob:
    """Register a job for ``request`` and hand it to the background worker."""

    job = RepositoryAuditJob(request=request)
    ctx_logger = log_with_context(logger, job_id=job.job_id, repository=request.repository_url)
    ctx_logger.debug(f"Adding job to queue (pending_jobs={_QUEUE.pending()})")
    await _QUEUE.enqueue(job)
    ctx_logger.debug(f"Job added to queue (new_pending_jobs={_QUEUE.pending()})")
    return job


def get_audit_job(job_id: str) -> RepositoryAuditJob | None:
    return _QUEUE.get(job_id)


def configure_audit_handler(handler: AuditJobHandler | None) -> None:
    """Configure the coroutine that processes jobs from the queue."""

    _QUEUE.configure_handler(handler)


async def wait_for_idle() -> None:
    """Block until every queued job has been processed."""

    await _QUEUE.join()


async def shutdown_queue() -> None:
    """Gracefully stop the worker task."""

    await _QUEUE.shutdown()


def reset_jobs() -> None:
    """Forget all known jobs (primarily for tests)."""

    _QUEUE.reset()


def pending_jobs() -> int:
    """Return the number of jobs waiting in the queue."""

    return _QUEUE.pending()
