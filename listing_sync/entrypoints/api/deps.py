# listing_sync/entrypoints/api/deps.py
from __future__ import annotations

from fastapi import Header, HTTPException, Request

from ...config import settings
from ...service_layer.sync_engine import IncrementalSyncEngine


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


def get_sync_engine(request: Request) -> IncrementalSyncEngine:
    # the app owns exactly one engine, created in create_app()
    return request.app.state.sync_engine
