from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Union

from api.contract import REQUIRED_FIELDS
from api.models import SurveyRow


class BodyParseError(ValueError):
    """The request body is not a JSON object (or a JSON string holding one)."""


def parse_body(raw: Union[bytes, str, Dict[str, Any], None]) -> Dict[str, Any]:
    """
    Accept the body in any of the shapes clients send it:
      - already-structured dict
      - JSON object text
      - JSON string whose content is itself a serialized object
    """
    if isinstance(raw, dict):
        return raw
    if raw is None:
        raise BodyParseError("Request body is empty")
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BodyParseError(f"Request body is not valid UTF-8: {e}") from e
    if not raw.strip():
        raise BodyParseError("Request body is empty")

    try:
        value: Any = json.loads(raw)
        if isinstance(value, str):
            value = json.loads(value)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and over-long integer literals
        raise BodyParseError(f"Malformed JSON: {e}") from e

    if not isinstance(value, dict):
        raise BodyParseError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def _is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    if isinstance(v, (list, dict)):
        return not v
    return False


def missing_required_fields(body: Dict[str, Any], required: Iterable[str] = REQUIRED_FIELDS) -> List[str]:
    return [name for name in required if _is_blank(body.get(name))]


def to_survey_row(body: Dict[str, Any], *, user_agent: Optional[str] = None) -> Dict[str, Any]:
    """
    Map a parsed body onto the fixed column set.

    The request's User-Agent header wins; the body's own `user_agent` is the
    fallback for clients that cannot set headers.
    """
    data = dict(body)
    data["user_agent"] = user_agent or body.get("user_agent")
    return SurveyRow.model_validate(data).model_dump()
