"""Audit every Solidity file of a GitHub repository, one vendor call at a time."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Dict, List, Protocol, Sequence

from auditor.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from auditor.models.audit import (
    FALLBACK_AUDIT_RESULT,
    AuditResult,
    RepositoryAuditSnapshot,
    SourceFileDescriptor,
    SourceFileWithContent,
)

logger = get_logger()

AuditOne = Callable[[str], Awaitable[AuditResult]]
SnapshotObserver = Callable[[RepositoryAuditSnapshot], Awaitable[None] | None]


class RepositoryAuditError(RuntimeError):
    """Raised when a repository audit stops before any file is audited."""


class NoSourceFilesFound(RepositoryAuditError):
    def __init__(self, reference: str):
        super().__init__("The repository doesn't contain any .sol files.")
        self.reference = reference


class RepositoryTooLarge(RepositoryAuditError):
    def __init__(self, total_lines: int, line_cap: int):
        super().__init__(
            f"Please audit a repo with fewer than {line_cap} total lines of Solidity code "
            f"(found {total_lines})."
        )
        self.total_lines = total_lines
        self.line_cap = line_cap


class SourceRepository(Protocol):
    async def list_source_files(self, reference: str, max_files: int) -> List[SourceFileDescriptor]: ...

    async def fetch_file_contents(self, files: Sequence[SourceFileDescriptor]) -> List[SourceFileWithContent]: ...


class RepositoryAuditPipeline:
    """Lists, size-checks, fetches and audits a repository's source files.

    Listing and size errors propagate and end the run with no result. Once
    auditing starts the run always completes: a file whose audit raises gets
    ``fallback`` instead. Progress is published as a fresh immutable snapshot
    after every audited file, in listing order.
    """

    def __init__(self, repository: SourceRepository, *, fallback: AuditResult = FALLBACK_AUDIT_RESULT) -> None:
        self._repository = repository
        self._fallback = fallback

    async def run(
        self,
        reference: str,
        *,
        max_files: int,
        total_line_cap: int,
        audit_one: AuditOne,
        on_snapshot: SnapshotObserver | None = None,
    ) -> RepositoryAuditSnapshot:
        ctx_logger = log_with_context(logger, repository=reference)

        with log_timing(ctx_logger, "list_source_files"):
            descriptors = await self._repository.list_source_files(reference, max_files)
        if not descriptors:
            ctx_logger.info("No Solidity files found")
            raise NoSourceFilesFound(reference)

        files = await self._repository.fetch_file_contents(descriptors)
        total_lines = sum(file.line_count for file in files)
        ctx_logger.info(f"Fetched {len(files)} file(s) totalling {total_lines} line(s)")
        if total_lines > total_line_cap:
            log_failure(logger, f"Repository exceeds line cap ({total_lines} > {total_line_cap})", repository=reference)
            raise RepositoryTooLarge(total_lines, total_line_cap)

        file_order = [file.path for file in files]
        results: Dict[str, AuditResult] = {}
        fallbacks = 0

        for index, file in enumerate(files, start=1):
            file_logger = log_with_context(ctx_logger, path=file.path, position=f"{index}/{len(files)}")
            if not file.content:
                file_logger.warning("Skipping file with no content")
                continue

            try:
                with log_timing(file_logger, "audit_file"):
                    results[file.path] = await audit_one(file.content)
            except Exception as exc:
                fallbacks += 1
                file_logger.warning(f"Audit failed, substituting fallback result: {exc}")
                results[file.path] = self._fallback

            await self._publish(on_snapshot, RepositoryAuditSnapshot.capture(file_order, results))

        log_success(
            logger,
            f"Audited {len(results)} of {len(file_order)} file(s) ({fallbacks} fallback)",
            repository=reference,
        )
        return RepositoryAuditSnapshot.capture(file_order, results)

    @staticmethod
    async def _publish(observer: SnapshotObserver | None, snapshot: RepositoryAuditSnapshot) -> None:
        if observer is None:
            return
        try:
            outcome = observer(snapshot)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning(f"Snapshot observer raised; continuing audit: {exc}")
