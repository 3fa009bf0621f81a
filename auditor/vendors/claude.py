from __future__ import annotations

from typing import Any, Dict

from auditor.vendors.base import VendorAuditClient

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeAuditClient(VendorAuditClient):
    vendor = "Claude"
    default_base_url = "https://api.anthropic.com/v1"

    def _build_request(self, prompt: str, api_key: str, model: str) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        body = {
            "model": model,
            "max_tokens": self.max_output_tokens,
            "temperature": 0,
            "messages": [{"role": "user", "content": prompt}],
        }
        return f"{self._base_url}/messages", headers, body

    def _extract_text(self, payload: Dict[str, Any]) -> str | None:
        for block in payload.get("content") or []:
            if block.get("type") == "text" and block.get("text"):
                return block["text"]
        return None
