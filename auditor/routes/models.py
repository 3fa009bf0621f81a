from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter

from auditor.vendors import VENDORS, models_for_vendor

router = APIRouter()


@router.get("/models", summary="List supported AI vendors and models")
async def list_models() -> Dict[str, List[Dict[str, str]]]:
    return {
        vendor: [{"value": model.value, "label": model.label} for model in models_for_vendor(vendor)]
        for vendor in VENDORS
    }
