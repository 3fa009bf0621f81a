"""GitHub API client helpers for listing and fetching Solidity sources."""

from __future__ import annotations

import asyncio
import re
from urllib.parse import quote
from typing import Any, Dict, List, Sequence

import httpx

from auditor.logger import get_logger, log_timing, log_with_context
from auditor.models.audit import RepositoryReference, SourceFileDescriptor, SourceFileWithContent

logger = get_logger()

DEFAULT_ACCEPT_HEADER = "application/vnd.github+json"
DEFAULT_API_VERSION = "2022-11-28"
SOURCE_EXTENSION = ".sol"

# https://github.com/{owner}/{repo}[/tree/{branch}], anchored at the start only
_GITHUB_REPO_PATTERN = re.compile(r"^https://github\.com/([^/]+)/([^/]+)(?:/tree/([^/]+))?")


class RepositoryListingError(RuntimeError):
    """Base class for failures while listing repository sources."""

    def __init__(self, message: str, status_code: int | None = None, response_body: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class InvalidReferenceError(RepositoryListingError):
    """Raised when a repository URL does not match the supported shape."""


class BranchResolutionError(RepositoryListingError):
    """Raised when the default branch of a repository cannot be determined."""


class TreeFetchError(RepositoryListingError):
    """Raised when the recursive file tree cannot be retrieved."""


def parse_repository_reference(reference: str) -> RepositoryReference:
    """Extract owner, repository and optional branch from a GitHub URL."""

    match = _GITHUB_REPO_PATTERN.match((reference or "").strip())
    if not match:
        raise InvalidReferenceError(f"Unsupported or invalid GitHub repo URL: {reference!r}")
    owner, repo, branch = match.groups()
    return RepositoryReference(owner=owner, repo=repo, branch=branch or None)


def _response_detail(response: httpx.Response) -> Any | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class GitHubRepositoryClient:
    """Read-only client for public repository trees and raw file contents."""

    def __init__(
        self,
        *,
        base_url: str = "https://api.github.com",
        raw_base_url: str = "https://raw.githubusercontent.com",
        token: str | None = None,
        timeout: float = 10.0,
        user_agent: str = "Solidity-Auditor/1.0",
        extension: str = SOURCE_EXTENSION,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._raw_base_url = raw_base_url.rstrip("/")
        self._extension = extension
        headers: Dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": DEFAULT_ACCEPT_HEADER,
            "X-GitHub-Api-Version": DEFAULT_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._api_headers = headers
        # Raw content host ignores the API headers; only send the user agent there.
        self._raw_headers = {"User-Agent": user_agent}
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None

    def raw_url(self, reference: RepositoryReference, branch: str, path: str) -> str:
        return f"{self._raw_base_url}/{reference.owner}/{reference.repo}/{branch}/{quote(path)}"

    async def resolve_default_branch(self, reference: RepositoryReference) -> str:
        url = f"{self._base_url}/repos/{reference.owner}/{reference.repo}"
        try:
            response = await self._client.get(url, headers=self._api_headers)
        except httpx.HTTPError as exc:
            raise BranchResolutionError(f"Couldn't resolve repo branch: {exc}") from exc

        if response.status_code >= 400:
            raise BranchResolutionError(
                f"Couldn't resolve repo branch: GitHub responded with status {response.status_code}.",
                response.status_code,
                _response_detail(response),
            )
        try:
            metadata = response.json()
        except ValueError as exc:
            raise BranchResolutionError(
                "Couldn't resolve repo branch: GitHub returned invalid JSON.",
                response.status_code,
                response.text,
            ) from exc

        branch = metadata.get("default_branch") if isinstance(metadata, dict) else None
        if not branch:
            raise BranchResolutionError(
                "Couldn't resolve repo branch: repository metadata has no default branch.",
                response.status_code,
                metadata,
            )
        return branch

    async def fetch_tree(self, reference: RepositoryReference, branch: str) -> List[Dict[str, Any]]:
        """Return the flat recursive tree listing for ``branch`` in one request."""

        url = f"{self._base_url}/repos/{reference.owner}/{reference.repo}/git/trees/{branch}"
        try:
            response = await self._client.get(url, headers=self._api_headers, params={"recursive": "1"})
        except httpx.HTTPError as exc:
            raise TreeFetchError(f"Could not fetch repo file tree: {exc}") from exc

        if response.status_code >= 400:
            raise TreeFetchError(
                f"Could not fetch repo file tree: GitHub responded with status {response.status_code}.",
                response.status_code,
                _response_detail(response),
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise TreeFetchError(
                "Could not fetch repo file tree: GitHub returned invalid JSON.",
                response.status_code,
                response.text,
            ) from exc

        tree = data.get("tree") if isinstance(data, dict) else None
        if not isinstance(tree, list):
            raise TreeFetchError("Empty repo tree", response.status_code, data)
        if isinstance(data, dict) and data.get("truncated"):
            logger.warning(f"GitHub truncated the tree listing for {reference.full_name}@{branch}")
        return tree

    async def list_source_files(self, reference: str, max_files: int) -> List[SourceFileDescriptor]:
        """List up to ``max_files`` source files in tree order."""

        parsed = parse_repository_reference(reference)
        ctx_logger = log_with_context(logger, repository=parsed.full_name)

        branch = parsed.branch
        if not branch:
            with log_timing(ctx_logger, "resolve_default_branch"):
                branch = await self.resolve_default_branch(parsed)
            ctx_logger.debug(f"Resolved default branch: {branch}")

        with log_timing(ctx_logger, "fetch_tree", branch=branch):
            tree = await self.fetch_tree(parsed, branch)

        matching = [
            entry
            for entry in tree
            if isinstance(entry, dict)
            and entry.get("type") == "blob"
            and isinstance(entry.get("path"), str)
            and entry["path"].endswith(self._extension)
        ]
        if len(matching) > max_files:
            ctx_logger.info(f"Found {len(matching)} {self._extension} files; keeping the first {max_files}")

        files = [
            SourceFileDescriptor(path=entry["path"], raw_url=self.raw_url(parsed, branch, entry["path"]))
            for entry in matching[:max(max_files, 0)]
        ]
        ctx_logger.info(f"Listed {len(files)} source file(s) on branch {branch}")
        return files

    async def _fetch_one(self, descriptor: SourceFileDescriptor) -> SourceFileWithContent:
        try:
            response = await self._client.get(descriptor.raw_url, headers=self._raw_headers)
        except httpx.HTTPError as exc:
            logger.warning(f"Fetching {descriptor.path} failed: {exc}")
            return SourceFileWithContent(path=descriptor.path, raw_url=descriptor.raw_url)

        if not response.is_success:
            logger.warning(f"Fetching {descriptor.path} returned status {response.status_code}")
            return SourceFileWithContent(path=descriptor.path, raw_url=descriptor.raw_url)
        return SourceFileWithContent(path=descriptor.path, raw_url=descriptor.raw_url, content=response.text)

    async def fetch_file_contents(self, files: Sequence[SourceFileDescriptor]) -> List[SourceFileWithContent]:
        """Fetch all files concurrently; failures degrade to empty content."""

        with log_timing(logger, "fetch_file_contents", files=len(files)):
            return list(await asyncio.gather(*(self._fetch_one(descriptor) for descriptor in files)))

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""

        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
