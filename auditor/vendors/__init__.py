"""Vendor audit clients and the registry used to pick one per request."""

from __future__ import annotations

from typing import Dict, Type

import httpx

from auditor.vendors.base import VendorAPIError, VendorAuditClient, build_audit_prompt
from auditor.vendors.catalog import (
    ALL_AI_MODELS,
    VENDORS,
    AIModel,
    AIVendor,
    UnknownVendorError,
    VendorCredentials,
    default_model,
    models_for_vendor,
    resolve_vendor,
)
from auditor.vendors.claude import ClaudeAuditClient
from auditor.vendors.gemini import GeminiAuditClient
from auditor.vendors.openai import GrokAuditClient, OpenAIAuditClient

_CLIENT_TYPES: Dict[AIVendor, Type[VendorAuditClient]] = {
    "Gemini": GeminiAuditClient,
    "OpenAI": OpenAIAuditClient,
    "Claude": ClaudeAuditClient,
    "Grok": GrokAuditClient,
}


def create_vendor_client(
    vendor: str,
    *,
    timeout: float = 60.0,
    client: httpx.AsyncClient | None = None,
) -> VendorAuditClient:
    """Instantiate the audit client for ``vendor`` (matched case-insensitively)."""

    resolved = resolve_vendor(vendor)
    return _CLIENT_TYPES[resolved](timeout=timeout, client=client)


__all__ = [
    "ALL_AI_MODELS",
    "VENDORS",
    "AIModel",
    "AIVendor",
    "ClaudeAuditClient",
    "GeminiAuditClient",
    "GrokAuditClient",
    "OpenAIAuditClient",
    "UnknownVendorError",
    "VendorAPIError",
    "VendorAuditClient",
    "VendorCredentials",
    "build_audit_prompt",
    "create_vendor_client",
    "default_model",
    "models_for_vendor",
    "resolve_vendor",
]
