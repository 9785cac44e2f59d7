from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from api.http_logging import install_http_logging
from api.routes import health, survey

logger = logging.getLogger("api")


def _repo_root() -> Path:
    # `api/main.py` lives at `<repo>/api/main.py`
    return Path(__file__).resolve().parents[1]


def _configure_logging() -> None:
    level = (os.getenv("SURVEY_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def create_app() -> FastAPI:
    # Load `.env` + `.env.local` when present (local dev convenience).
    load_dotenv(_repo_root() / ".env", override=False)
    load_dotenv(_repo_root() / ".env.local", override=False)
    _configure_logging()

    app = FastAPI(title="zimdev-survey-api")

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = f"err_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        logger.error("500 internal_error requestId=%s path=%s err=%r", request_id, request.url.path, exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "requestId": request_id},
            headers=survey.CORS_HEADERS,
        )

    app.include_router(health.router)
    app.include_router(survey.router)
    install_http_logging(app)
    return app


app = create_app()
