from __future__ import annotations

from typing import Any, Dict

from auditor.vendors.base import VendorAuditClient


class OpenAIAuditClient(VendorAuditClient):
    vendor = "OpenAI"
    default_base_url = "https://api.openai.com/v1"

    def _build_request(self, prompt: str, api_key: str, model: str) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.0,
            "max_tokens": self.max_output_tokens,
        }
        return f"{self._base_url}/chat/completions", headers, body

    def _extract_text(self, payload: Dict[str, Any]) -> str | None:
        choices = payload.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("message") or {}).get("content")


class GrokAuditClient(OpenAIAuditClient):
    """xAI exposes an OpenAI-compatible chat completions endpoint."""

    vendor = "Grok"
    default_base_url = "https://api.x.ai/v1"
