from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter

from api.contract import survey_table
from api.supabase_client import supabase_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    """Liveness plus whether the store is configured; never touches the database."""
    url, key = supabase_settings()
    return {
        "ok": True,
        "service": "zimdev-survey-api",
        "table": survey_table(),
        "store_configured": bool(url and key),
        "ts": int(time.time() * 1000),
    }
