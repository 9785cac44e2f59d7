#!/usr/bin/env python3
"""
Verify the Supabase connection the survey endpoint will use.

Reads the same env vars as `api/supabase_client.py` and counts rows in the
survey table. Nothing is written.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from api.contract import survey_table  # noqa: E402
from api.supabase_client import get_supabase_client, supabase_settings  # noqa: E402


def check_connection(table: str) -> bool:
    url, key = supabase_settings()
    print(f"SUPABASE_URL: {url[:50]}..." if url else "SUPABASE_URL not set")
    print(f"SUPABASE_KEY: {'set' if key else 'not set'}")
    if not url or not key:
        print("Missing required environment variables.")
        return False

    client = get_supabase_client()
    if not client:
        print("Failed to create Supabase client")
        return False

    try:
        result = client.table(table).select("*", count="exact").limit(1).execute()
    except Exception as e:
        print(f"Query on {table} failed: {e}")
        print("Check that the table exists and the key may read it.")
        return False

    print(f"Connected. {table} holds {getattr(result, 'count', None)} responses.")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Check the Supabase connection used by the survey endpoint.")
    parser.add_argument("--table", help="Table to query (defaults to SURVEY_TABLE or survey_responses).")
    args = parser.parse_args()

    load_dotenv(REPO_ROOT / ".env", override=False)
    load_dotenv(REPO_ROOT / ".env.local", override=False)
    ok = check_connection(args.table or survey_table())
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
