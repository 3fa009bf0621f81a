"""Shared plumbing for AI vendor audit clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

import httpx

from auditor.logger import get_logger, log_timing, log_with_context
from auditor.models.audit import AuditResult
from auditor.services.result_parser import parse_audit_result
from auditor.vendors.catalog import AIVendor, default_model, is_known_model

logger = get_logger()


class VendorAPIError(RuntimeError):
    """Raised when a vendor API call fails or returns no usable text."""

    def __init__(self, message: str, vendor: str, status_code: int | None = None, response_body: Any | None = None):
        super().__init__(message)
        self.vendor = vendor
        self.status_code = status_code
        self.response_body = response_body


def build_audit_prompt(source_code: str) -> str:
    return (
        "You are a Solidity smart contract auditor.\n"
        "Analyze the Solidity contract below for security vulnerabilities.\n\n"
        "Return ONLY a JSON object with:\n"
        "{\n"
        "  \"vulnerabilities\": [{\"line\": number, \"type\": string, \"message\": string, "
        "\"severity\": \"high\"|\"medium\"|\"low\"}],\n"
        "  \"explanations\": [{\"line\": number, \"explanation\": string}],\n"
        "  \"suggestedFixes\": [{\"line\": number, \"fix\": string}]\n"
        "}\n"
        "No commentary or formatting.\n\n"
        "Solidity code:\n"
        f"```solidity\n{source_code}\n```"
    )


class VendorAuditClient(ABC):
    """Submit Solidity source to one vendor and return the raw reply text."""

    vendor: AIVendor
    default_base_url: str
    max_output_tokens: int = 1500

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @abstractmethod
    def _build_request(self, prompt: str, api_key: str, model: str) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return url, headers and JSON body for one audit request."""

    @abstractmethod
    def _extract_text(self, payload: Dict[str, Any]) -> str | None:
        """Pull the reply text out of the vendor's response envelope."""

    async def submit(self, source_code: str, api_key: str, model: str | None = None) -> str:
        model = model or default_model(self.vendor)
        ctx_logger = log_with_context(logger, vendor=self.vendor, model=model)
        if not is_known_model(self.vendor, model):
            ctx_logger.warning(f"Model '{model}' is not in the {self.vendor} catalog; sending it anyway")

        url, headers, body = self._build_request(build_audit_prompt(source_code), api_key, model)
        try:
            with log_timing(ctx_logger, "vendor_request"):
                response = await self._client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise VendorAPIError(f"Failed to call {self.vendor}: {exc}", self.vendor) from exc

        if response.status_code >= 400:
            detail: Any | None
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise VendorAPIError(
                f"Failed to call {self.vendor}: status={response.status_code}, detail={detail}",
                self.vendor,
                response.status_code,
                detail,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise VendorAPIError(
                f"{self.vendor} returned invalid JSON.", self.vendor, response.status_code, response.text
            ) from exc

        try:
            text = self._extract_text(payload) if isinstance(payload, dict) else None
        except (AttributeError, TypeError, KeyError, IndexError) as exc:
            raise VendorAPIError(
                f"{self.vendor} response envelope was malformed.", self.vendor, response.status_code, payload
            ) from exc
        if not isinstance(text, str) or not text:
            raise VendorAPIError(
                f"{self.vendor} response contained no text.", self.vendor, response.status_code, payload
            )
        ctx_logger.debug(f"Received {len(text)} characters from {self.vendor}")
        return text

    async def audit(self, source_code: str, api_key: str, model: str | None = None) -> AuditResult:
        """Submit source and parse the reply into an audit result."""
        raw_text = await self.submit(source_code, api_key, model)
        return parse_audit_result(raw_text)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
