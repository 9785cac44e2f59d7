"""
Serverless entrypoint.

The hosting platform imports `app` from this module and routes
`/api/create/survey` to it; all wiring lives in `api.main.create_app`.
"""

from __future__ import annotations

from api.main import app

__all__ = ["app"]
