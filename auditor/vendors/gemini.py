from __future__ import annotations

from typing import Any, Dict

from auditor.vendors.base import VendorAuditClient


class GeminiAuditClient(VendorAuditClient):
    vendor = "Gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    max_output_tokens = 2048

    def _build_request(self, prompt: str, api_key: str, model: str) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0, "maxOutputTokens": self.max_output_tokens},
        }
        return f"{self._base_url}/models/{model}:generateContent", headers, body

    def _extract_text(self, payload: Dict[str, Any]) -> str | None:
        candidates = payload.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None
        return parts[0].get("text") or parts[0].get("data")
