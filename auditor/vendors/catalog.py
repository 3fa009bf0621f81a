"""Supported AI vendors, their models, and per-vendor credentials."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, get_args

AIVendor = Literal["Gemini", "OpenAI", "Claude", "Grok"]

VENDORS: tuple[AIVendor, ...] = get_args(AIVendor)

VENDOR_API_KEY_ENV: Dict[AIVendor, str] = {
    "Gemini": "GEMINI_API_KEY",
    "OpenAI": "OPENAI_API_KEY",
    "Claude": "ANTHROPIC_API_KEY",
    "Grok": "XAI_API_KEY",
}


class UnknownVendorError(ValueError):
    """Raised when a vendor name is not one of the supported vendors."""


@dataclass(frozen=True, slots=True)
class AIModel:
    vendor: AIVendor
    value: str
    label: str


ALL_AI_MODELS: tuple[AIModel, ...] = (
    AIModel("Gemini", "gemini-1.5-flash-latest", "Gemini 1.5 Flash (fast, less accurate)"),
    AIModel("Gemini", "gemini-1.5-pro-latest", "Gemini 1.5 Pro (better results)"),
    AIModel("OpenAI", "gpt-4o-mini", "OpenAI GPT-4o Mini"),
    AIModel("OpenAI", "gpt-4o", "OpenAI GPT-4o"),
    AIModel("Claude", "claude-opus-4-20250514", "Claude 4 Opus"),
    AIModel("Claude", "claude-sonnet-4-20250514", "Claude 4 Sonnet"),
    AIModel("Grok", "grok-1.5", "Grok 1.5"),
)


def resolve_vendor(name: str) -> AIVendor:
    """Match a vendor name case-insensitively against the supported vendors."""

    cleaned = (name or "").strip().lower()
    for vendor in VENDORS:
        if vendor.lower() == cleaned:
            return vendor
    raise UnknownVendorError(f"Unsupported AI vendor '{name}'. Expected one of: {', '.join(VENDORS)}.")


def models_for_vendor(vendor: AIVendor) -> List[AIModel]:
    return [model for model in ALL_AI_MODELS if model.vendor == vendor]


def default_model(vendor: AIVendor) -> str:
    return models_for_vendor(vendor)[0].value


def is_known_model(vendor: AIVendor, model: str) -> bool:
    return any(entry.value == model for entry in models_for_vendor(vendor))


class VendorCredentials:
    """API keys scoped by vendor.

    Built from settings and handed to whoever needs to call a vendor, so no
    component reads keys from ambient state. Request-level overrides go
    through ``with_override`` which returns a new store.
    """

    def __init__(self, keys: Mapping[str, str] | None = None) -> None:
        self._keys: Dict[AIVendor, str] = {}
        for name, value in (keys or {}).items():
            if value:
                self._keys[resolve_vendor(name)] = value

    def get(self, vendor: AIVendor) -> str | None:
        return self._keys.get(vendor)

    def with_override(self, vendor: AIVendor, api_key: str | None) -> "VendorCredentials":
        merged: Dict[str, str] = dict(self._keys)
        if api_key:
            merged[vendor] = api_key
        return VendorCredentials(merged)

    def configured_vendors(self) -> List[AIVendor]:
        return [vendor for vendor in VENDORS if vendor in self._keys]
