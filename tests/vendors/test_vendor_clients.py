"""Tests for vendor request building and reply extraction."""

from __future__ import annotations

import json

import httpx
import pytest

from auditor.models.audit import Vulnerability
from auditor.services.result_parser import UnparsableResponseError
from auditor.vendors import (
    ClaudeAuditClient,
    GeminiAuditClient,
    GrokAuditClient,
    OpenAIAuditClient,
    UnknownVendorError,
    VendorAPIError,
    VendorCredentials,
    create_vendor_client,
    resolve_vendor,
)
from tests._fixtures.http import FakeHTTP, gemini_reply

AUDIT_JSON = json.dumps(
    {
        "vulnerabilities": [{"line": 4, "type": "Reentrancy", "message": "m", "severity": "HIGH"}],
        "explanations": [],
        "suggestedFixes": [],
    }
)
CONTRACT = "pragma solidity ^0.8.0;\ncontract Vault {}"


async def test_gemini_request_and_reply(fake_http: FakeHTTP) -> None:
    url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro-latest:generateContent"
    fake_http.json(url, gemini_reply(f"Sure!\n```json\n{AUDIT_JSON}\n```"))
    client = GeminiAuditClient(client=fake_http.client())

    result = await client.audit(CONTRACT, "g-key", "gemini-1.5-pro-latest")

    assert result.vulnerabilities == (Vulnerability(4, "Reentrancy", "m", "high"),)
    request = fake_http.calls[0]
    assert request.headers["x-goog-api-key"] == "g-key"
    body = json.loads(request.content)
    assert body["generationConfig"] == {"temperature": 0, "maxOutputTokens": 2048}
    assert CONTRACT in body["contents"][0]["parts"][0]["text"]


async def test_gemini_uses_default_model(fake_http: FakeHTTP) -> None:
    url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent"
    fake_http.json(url, gemini_reply(AUDIT_JSON))

    raw = await GeminiAuditClient(client=fake_http.client()).submit(CONTRACT, "g-key")

    assert raw == AUDIT_JSON


async def test_openai_request_and_reply(fake_http: FakeHTTP) -> None:
    fake_http.json(
        "https://api.openai.com/v1/chat/completions",
        {"choices": [{"message": {"role": "assistant", "content": AUDIT_JSON}}]},
    )

    raw = await OpenAIAuditClient(client=fake_http.client()).submit(CONTRACT, "sk-test", "gpt-4o")

    assert raw == AUDIT_JSON
    request = fake_http.calls[0]
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o"
    assert body["temperature"] == 0.0
    assert body["max_tokens"] == 1500


async def test_grok_uses_xai_endpoint(fake_http: FakeHTTP) -> None:
    fake_http.json(
        "https://api.x.ai/v1/chat/completions",
        {"choices": [{"message": {"content": AUDIT_JSON}}]},
    )

    raw = await GrokAuditClient(client=fake_http.client()).submit(CONTRACT, "xai-key")

    assert raw == AUDIT_JSON
    assert json.loads(fake_http.calls[0].content)["model"] == "grok-1.5"


async def test_claude_request_and_reply(fake_http: FakeHTTP) -> None:
    fake_http.json(
        "https://api.anthropic.com/v1/messages",
        {"content": [{"type": "thinking", "thinking": "..."}, {"type": "text", "text": AUDIT_JSON}]},
    )

    raw = await ClaudeAuditClient(client=fake_http.client()).submit(CONTRACT, "sk-ant", "claude-sonnet-4-20250514")

    assert raw == AUDIT_JSON
    request = fake_http.calls[0]
    assert request.headers["x-api-key"] == "sk-ant"
    assert request.headers["anthropic-version"] == "2023-06-01"


async def test_error_status_raises_vendor_error(fake_http: FakeHTTP) -> None:
    fake_http.json("https://api.openai.com/v1/chat/completions", {"error": "bad key"}, status_code=401)

    with pytest.raises(VendorAPIError) as excinfo:
        await OpenAIAuditClient(client=fake_http.client()).submit(CONTRACT, "sk-bad")

    assert excinfo.value.status_code == 401
    assert excinfo.value.vendor == "OpenAI"


async def test_transport_failure_raises_vendor_error(fake_http: FakeHTTP) -> None:
    def _timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    fake_http.add("https://api.anthropic.com/v1/messages", _timeout)

    with pytest.raises(VendorAPIError):
        await ClaudeAuditClient(client=fake_http.client()).submit(CONTRACT, "sk-ant")


async def test_empty_envelope_raises_vendor_error(fake_http: FakeHTTP) -> None:
    url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent"
    fake_http.json(url, {"candidates": []})

    with pytest.raises(VendorAPIError):
        await GeminiAuditClient(client=fake_http.client()).submit(CONTRACT, "g-key")


async def test_prose_reply_raises_parse_error(fake_http: FakeHTTP) -> None:
    url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent"
    fake_http.json(url, gemini_reply("I am unable to audit this contract."))

    with pytest.raises(UnparsableResponseError):
        await GeminiAuditClient(client=fake_http.client()).audit(CONTRACT, "g-key")


def test_registry_resolves_vendor_names() -> None:
    assert isinstance(create_vendor_client("gemini"), GeminiAuditClient)
    assert isinstance(create_vendor_client("Claude"), ClaudeAuditClient)
    assert resolve_vendor(" GROK ") == "Grok"
    with pytest.raises(UnknownVendorError):
        create_vendor_client("llama")


def test_credentials_are_scoped_by_vendor() -> None:
    credentials = VendorCredentials({"gemini": "g-key", "OpenAI": ""})

    assert credentials.get("Gemini") == "g-key"
    assert credentials.get("OpenAI") is None
    overridden = credentials.with_override("OpenAI", "sk-req")
    assert overridden.get("OpenAI") == "sk-req"
    assert credentials.get("OpenAI") is None
    assert overridden.configured_vendors() == ["Gemini", "OpenAI"]
    assert credentials.with_override("Gemini", None).get("Gemini") == "g-key"


@pytest.mark.parametrize(
    ("client_cls", "url", "payload"),
    [
        (OpenAIAuditClient, "https://api.openai.com/v1/chat/completions", {"choices": [{"message": "plain text"}]}),
        (GrokAuditClient, "https://api.x.ai/v1/chat/completions", {"choices": ["plain text"]}),
        (
            GeminiAuditClient,
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent",
            {"candidates": [{"content": "plain text"}]},
        ),
        (ClaudeAuditClient, "https://api.anthropic.com/v1/messages", {"content": ["plain text"]}),
        (OpenAIAuditClient, "https://api.openai.com/v1/chat/completions", {"choices": [{"message": {"content": 7}}]}),
    ],
)
async def test_malformed_envelope_raises_vendor_error(fake_http: FakeHTTP, client_cls, url: str, payload: dict) -> None:
    fake_http.json(url, payload)

    with pytest.raises(VendorAPIError) as excinfo:
        await client_cls(client=fake_http.client()).submit(CONTRACT, "key")

    assert excinfo.value.status_code == 200
    assert excinfo.value.response_body == payload
