from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from survey_form.errors import (
    MalformedResponseError,
    ServerFailureError,
    ServerRejectedError,
    TransportError,
)

logger = logging.getLogger(__name__)


def interpret_response(response: httpx.Response) -> Dict[str, Any]:
    """
    Map an endpoint response onto success or one of the failure shapes:

    - 2xx with `{"success": true}` => the parsed body
    - 2xx with anything else => MalformedResponseError
    - 4xx => ServerRejectedError carrying the server's own message
    - 5xx (or any other status) => ServerFailureError, no server detail kept
    """
    try:
        body: Any = response.json()
    except ValueError:
        body = None

    status = response.status_code
    if response.is_success:
        if not isinstance(body, dict) or body.get("success") is not True:
            raise MalformedResponseError()
        return body

    if 400 <= status < 500:
        error = details = ""
        if isinstance(body, dict):
            error = str(body.get("error") or "").strip()
            details = str(body.get("details") or "").strip()
        message = error or details or f"Server error: {status}"
        if error and details:
            message = f"{error}: {details}"
        raise ServerRejectedError(status, message, details or None)

    logger.warning("survey endpoint failed status=%s", status)
    raise ServerFailureError(status)


class SurveyClient:
    """Thin wrapper around httpx for simpler mocking in tests."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        headers = {"Accept": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(
                self.endpoint,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("survey submit transport error: %r", e)
            raise TransportError(f"Network error: {e}") from e
        logger.debug("survey endpoint answered status=%s", response.status_code)
        return interpret_response(response)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SurveyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
