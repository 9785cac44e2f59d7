"""
Supabase client for storing survey responses.

Uses the official Supabase Python client. The endpoint only ever inserts:
no reads, updates or deletes go through this module.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

from supabase import Client, create_client

from api.contract import survey_table

logger = logging.getLogger("api.supabase")

_client: Optional[Client] = None


def supabase_settings() -> Tuple[Optional[str], Optional[str]]:
    """(url, key) from the environment; either may be None."""
    # SUPABASE_URL / SUPABASE_KEY first; the NEXT_PUBLIC_* names keep shared .env files working.
    url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    key = (
        os.getenv("SUPABASE_KEY")
        or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY")
    )
    return url, key


def get_supabase_client() -> Optional[Client]:
    """Get or create Supabase client (singleton)."""
    global _client

    if _client is not None:
        return _client

    url, key = supabase_settings()

    if not url or not key:
        logger.error("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY missing)")
        return None

    try:
        _client = create_client(url, key)
        return _client
    except Exception as e:
        logger.error("Failed to create Supabase client: %s", e)
        return None


def reset_supabase_client() -> None:
    global _client
    _client = None


def _insert_row(table: str, row: Dict[str, Any]) -> bool:
    client = get_supabase_client()
    if not client:
        return False
    try:
        client.table(table).insert(row).execute()
        return True
    except Exception as e:
        logger.error("Error inserting into %s: %s", table, e)
        return False


def insert_survey_response(row: Dict[str, Any]) -> bool:
    """Append one normalized response row. Returns False on any store failure."""
    return _insert_row(survey_table(), row)
