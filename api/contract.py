from __future__ import annotations

import os
from typing import Tuple

# The server never trusts client-side validation; these two are checked on every request.
REQUIRED_FIELDS: Tuple[str, ...] = ("age", "employment_status")

DEFAULT_TABLE = "survey_responses"


def survey_table() -> str:
    # Env override keeps staging and production tables apart.
    return (os.getenv("SURVEY_TABLE") or "").strip() or DEFAULT_TABLE
