"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Final

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError

from auditor.vendors.catalog import VENDOR_API_KEY_ENV, AIVendor, VendorCredentials, resolve_vendor

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    github_api_base_url: AnyHttpUrl = "https://api.github.com"
    github_raw_base_url: AnyHttpUrl = "https://raw.githubusercontent.com"
    github_token: str | None = None
    max_files: int = Field(default=10, ge=1)
    total_line_cap: int = Field(default=2000, ge=1)
    default_vendor: AIVendor = "Gemini"
    vendor_api_keys: Dict[str, str] = Field(default_factory=dict)
    vendor_timeout: float = Field(default=60.0, gt=0)
    http_timeout: float = Field(default=10.0, gt=0)

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.github_api_base_url).rstrip("/")

    @property
    def normalized_github_raw_base_url(self) -> str:
        """Return the raw-content base URL without a trailing slash."""
        return str(self.github_raw_base_url).rstrip("/")

    def vendor_credentials(self) -> VendorCredentials:
        """Return a fresh credential store seeded from the configured keys."""
        return VendorCredentials(self.vendor_api_keys)


_TRUE_VALUES: Final[set[str]] = {"1", "true", "yes", "on"}


def _parse_int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"Invalid value for {name}. It must be an integer.") from exc


def _parse_float_env(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return float(raw_value)
    except ValueError as exc:
        raise SettingsError(f"Invalid value for {name}. It must be a number.") from exc


def _collect_vendor_keys() -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for vendor, env_name in VENDOR_API_KEY_ENV.items():
        value = os.getenv(env_name)
        if value and value.strip():
            keys[vendor] = value.strip()
    return keys


def _build_settings() -> Settings:
    default_vendor_raw = os.getenv("AUDIT_DEFAULT_VENDOR") or "Gemini"
    try:
        default_vendor = resolve_vendor(default_vendor_raw)
    except ValueError as exc:
        raise SettingsError(f"Invalid value for AUDIT_DEFAULT_VENDOR: {default_vendor_raw!r}.") from exc

    try:
        return Settings(
            github_api_base_url=os.getenv("GITHUB_API_BASE_URL") or "https://api.github.com",
            github_raw_base_url=os.getenv("GITHUB_RAW_BASE_URL") or "https://raw.githubusercontent.com",
            github_token=os.getenv("GITHUB_TOKEN") or None,
            max_files=_parse_int_env("AUDIT_MAX_FILES", 10),
            total_line_cap=_parse_int_env("AUDIT_TOTAL_LINE_CAP", 2000),
            default_vendor=default_vendor,
            vendor_api_keys=_collect_vendor_keys(),
            vendor_timeout=_parse_float_env("VENDOR_TIMEOUT_SECONDS", 60.0),
            http_timeout=_parse_float_env("HTTP_TIMEOUT_SECONDS", 10.0),
        )
    except ValidationError as exc:
        raise SettingsError(f"Invalid application configuration: {exc}") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return _build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()


def parse_bool(raw_value: str | None, *, default: bool = False) -> bool:
    """Convert an environment variable string to a boolean value."""

    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUE_VALUES
