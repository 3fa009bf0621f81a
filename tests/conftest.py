from __future__ import annotations

import os
import tempfile

os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="auditor-logs-"))
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")

import pytest

from auditor.config import Settings
from tests._fixtures.http import FakeHTTP


@pytest.fixture
def fake_http() -> FakeHTTP:
    """Provide an in-process HTTP fake for GitHub and vendor endpoints."""
    return FakeHTTP()


@pytest.fixture
def settings() -> Settings:
    return Settings(vendor_api_keys={"Gemini": "test-gemini-key"})
