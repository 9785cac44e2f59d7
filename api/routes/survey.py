from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from api.models import ErrorBody, SurveyAck
from api.request_adapter import BodyParseError, missing_required_fields, parse_body, to_survey_row
from api.supabase_client import insert_survey_response

logger = logging.getLogger("api.survey")

router = APIRouter(prefix="/api", tags=["survey"])

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, Accept, X-Requested-With",
}

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _json(status_code: int, body: Any) -> JSONResponse:
    content = body.model_dump(exclude_none=True) if hasattr(body, "model_dump") else body
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    return _json(status_code, ErrorBody(error=error, details=details))


@router.api_route("/create/survey", methods=ALL_METHODS)
async def create_survey(request: Request) -> Response:
    """
    Insert one survey response.

    - OPTIONS: CORS pre-flight, 200 with no body
    - POST: JSON object body; `age` and `employment_status` are mandatory
    - anything else: 405
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    if request.method != "POST":
        return _error(405, "Method not allowed")

    try:
        body = parse_body(await request.body())
    except BodyParseError as e:
        logger.info("400 invalid body: %s", e)
        return _error(400, "Invalid request", str(e))

    logger.debug("received survey body keys=%s", sorted(body.keys()))

    missing = missing_required_fields(body)
    if missing:
        logger.info("400 missing required fields: %s", ", ".join(missing))
        return _error(400, "Missing required fields", ", ".join(missing))

    row = to_survey_row(body, user_agent=request.headers.get("user-agent"))
    if not insert_survey_response(row):
        return _error(500, "Database insert failed")

    return _json(200, SurveyAck())
