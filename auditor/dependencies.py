"""FastAPI dependency factories."""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

from fastapi import Header, HTTPException, status

from auditor.audit_store import InMemoryAuditStore
from auditor.config import Settings, SettingsError, get_settings
from auditor.logger import get_logger
from auditor.vendors import VendorAuditClient, create_vendor_client

logger = get_logger()

VendorClientFactory = Callable[[str, Settings], VendorAuditClient]


def settings_dependency() -> Settings:
    """Resolve application settings, surfacing configuration errors via HTTPException."""

    try:
        return get_settings()
    except SettingsError as exc:
        logger.error(f"Failed to load settings: {exc}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@lru_cache(maxsize=1)
def _audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


def audit_store_dependency() -> InMemoryAuditStore:
    """Provide the process-wide audit store."""

    return _audit_store()


def reset_audit_store() -> None:
    """Drop the cached audit store (primarily for tests)."""

    _audit_store.cache_clear()


def _create_vendor_client(vendor: str, settings: Settings) -> VendorAuditClient:
    return create_vendor_client(vendor, timeout=settings.vendor_timeout)


def vendor_client_factory_dependency() -> VendorClientFactory:
    """Provide the callable used to build a vendor client per request."""

    return _create_vendor_client


def optional_user_dependency(x_user_id: str | None = Header(default=None)) -> str | None:
    """Return the caller's opaque user id, if one was sent."""

    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def required_user_dependency(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller's user id or reject the request."""

    user_id = optional_user_dependency(x_user_id)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please log in to view your past audits.",
        )
    return user_id
