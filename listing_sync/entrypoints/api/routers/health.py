# listing_sync/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    def _redact(v: str | None) -> str | None:
        if not v:
            return v
        if len(v) <= 8:
            return "***"
        return v[:4] + "***" + v[-4:]

    return {
        "ENV": settings.ENV,
        "SYNC_DB_URL": settings.SYNC_DB_URL,
        "MLSGRID_API_URL": settings.MLSGRID_API_URL,
        "MLSGRID_TOKEN_SOURCE": settings.mlsgrid_token_source,
        "MLSGRID_TOKEN": _redact(settings.mlsgrid_token),
        "SEARCH_API_URL": settings.SEARCH_API_URL,
        "SEARCH_API_KEY": _redact(settings.SEARCH_API_KEY),
        "SYNC_PAGE_SIZE": str(settings.SYNC_PAGE_SIZE),
        "DEDUPE_THRESHOLD": str(settings.DEDUPE_THRESHOLD),
    }
