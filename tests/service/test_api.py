"""Tests for the HTTP API."""

from __future__ import annotations

import json
import time
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from auditor.config import Settings
from auditor.dependencies import (
    reset_audit_store,
    settings_dependency,
    vendor_client_factory_dependency,
)
from auditor.main import app
from auditor.models.audit import FALLBACK_AUDIT_RESULT, RepositoryAuditSnapshot
from auditor.queue import configure_audit_handler, reset_jobs
from auditor.queue.models import RepositoryAuditJob
from auditor.vendors import GeminiAuditClient, OpenAIAuditClient
from tests._fixtures.http import FakeHTTP, gemini_reply

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent"
REPORT = {
    "vulnerabilities": [{"line": 3, "type": "Reentrancy", "message": "m", "severity": "high"}],
    "explanations": [],
    "suggestedFixes": [],
}


@pytest.fixture
def client(fake_http: FakeHTTP, settings: Settings) -> Iterator[TestClient]:
    def _vendor_factory(vendor: str, _settings: Settings):
        if vendor == "OpenAI":
            return OpenAIAuditClient(client=fake_http.client())
        return GeminiAuditClient(client=fake_http.client())

    app.dependency_overrides[settings_dependency] = lambda: settings
    app.dependency_overrides[vendor_client_factory_dependency] = lambda: _vendor_factory
    reset_audit_store()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    configure_audit_handler(None)
    reset_jobs()
    reset_audit_store()


def test_root_and_health(client: TestClient) -> None:
    assert client.get("/").text == "pong"
    health = client.get("/health").json()
    assert "operational" in health["status"]
    assert "fastapi version" in health["environment"]


def test_models_catalog(client: TestClient) -> None:
    catalog = client.get("/models").json()

    assert list(catalog) == ["Gemini", "OpenAI", "Claude", "Grok"]
    assert catalog["Gemini"][0] == {
        "value": "gemini-1.5-flash-latest",
        "label": "Gemini 1.5 Flash (fast, less accurate)",
    }


def test_code_audit_persists_for_user(client: TestClient, fake_http: FakeHTTP) -> None:
    fake_http.json(GEMINI_URL, gemini_reply(f"Result:\n{json.dumps(REPORT)}"))

    response = client.post(
        "/audits/code", json={"source_code": "contract Vault {}"}, headers={"X-User-Id": "alice"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["vendor"] == "Gemini"
    assert data["model"] == "gemini-1.5-flash-latest"
    assert data["fallback"] is False
    assert data["result"] == REPORT

    history = client.get("/audits", headers={"X-User-Id": "alice"}).json()
    assert [item["id"] for item in history] == [data["audit_id"]]
    assert history[0]["source_preview"] == "contract Vault {}"
    assert client.get("/audits", headers={"X-User-Id": "bob"}).json() == []


def test_code_audit_without_key_returns_sample(client: TestClient, fake_http: FakeHTTP) -> None:
    response = client.post("/audits/code", json={"source_code": "contract Vault {}", "vendor": "openai"})

    data = response.json()
    assert response.status_code == 200
    assert data["vendor"] == "OpenAI"
    assert data["fallback"] is True
    assert data["result"] == FALLBACK_AUDIT_RESULT.to_dict()
    assert fake_http.calls == []


def test_code_audit_uses_request_key(client: TestClient, fake_http: FakeHTTP) -> None:
    fake_http.json(
        "https://api.openai.com/v1/chat/completions",
        {"choices": [{"message": {"content": json.dumps(REPORT)}}]},
    )

    response = client.post(
        "/audits/code",
        json={"source_code": "contract Vault {}", "vendor": "OpenAI", "model": "gpt-4o", "api_key": "sk-req"},
    )

    assert response.json()["fallback"] is False
    assert fake_http.calls[0].headers["Authorization"] == "Bearer sk-req"


@pytest.mark.parametrize("body", [{"source_code": ""}, {"source_code": "   "}, {}])
def test_code_audit_rejects_empty_source(client: TestClient, body: dict) -> None:
    assert client.post("/audits/code", json=body).status_code == 422


def test_code_audit_rejects_unknown_vendor(client: TestClient) -> None:
    response = client.post("/audits/code", json={"source_code": "contract A {}", "vendor": "llama"})

    assert response.status_code == 400


def test_history_requires_user(client: TestClient) -> None:
    assert client.get("/audits").status_code == 401


def test_download_report(client: TestClient, fake_http: FakeHTTP) -> None:
    fake_http.json(GEMINI_URL, gemini_reply(json.dumps(REPORT)))
    audit_id = client.post(
        "/audits/code", json={"source_code": "contract Vault {}"}, headers={"X-User-Id": "alice"}
    ).json()["audit_id"]

    response = client.get(f"/audits/{audit_id}/download", headers={"X-User-Id": "alice"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert 'filename="solidity-audit-report-' in response.headers["content-disposition"]
    assert response.json()["report"] == REPORT
    assert client.get(f"/audits/{audit_id}/download", headers={"X-User-Id": "bob"}).status_code == 404


def test_repository_audit_rejects_invalid_url(client: TestClient) -> None:
    response = client.post("/audits/repository", json={"repository_url": "https://gitlab.com/acme/demo"})

    assert response.status_code == 400


def test_unknown_job_is_404(client: TestClient) -> None:
    assert client.get("/audits/repository/does-not-exist").status_code == 404


def test_repository_audit_job_can_be_polled(client: TestClient, settings: Settings) -> None:
    received: list[RepositoryAuditJob] = []

    async def _handler(job: RepositoryAuditJob) -> None:
        received.append(job)
        job.apply_snapshot(RepositoryAuditSnapshot.capture(["a.sol", "empty.sol"], {"a.sol": FALLBACK_AUDIT_RESULT}))
        job.mark("completed")

    configure_audit_handler(_handler)

    response = client.post(
        "/audits/repository",
        json={"repository_url": "https://github.com/acme/demo", "max_files": 3, "api_key": "secret"},
    )
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    state = client.get(f"/audits/repository/{job_id}").json()
    for _ in range(100):
        if state["status"] == "completed":
            break
        time.sleep(0.02)
        state = client.get(f"/audits/repository/{job_id}").json()

    assert state["status"] == "completed"
    assert state["vendor"] == "Gemini"
    assert state["file_order"] == ["a.sol", "empty.sol"]
    assert list(state["results"]) == ["a.sol"]
    assert "api_key" not in state
    assert received[0].request.max_files == 3
    assert received[0].request.total_line_cap == settings.total_line_cap
    assert received[0].request.api_key == "secret"
