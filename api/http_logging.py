"""
Opt-in request/response logging for the survey endpoint.

Each request produces one JSON line on the `api.http` logger. Credentials and
the respondent's email address are masked before anything is written.
"""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("api.http")

Headers = List[Tuple[bytes, bytes]]

MASK = "***"

_SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "apikey",
        "token",
        "secret",
        "password",
        "supabase_key",
        "supabase_service_role_key",
        "email",
    }
)

_TRUTHY = {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class HttpLogSettings:
    enabled: bool = False
    log_headers: bool = False
    max_body_bytes: int = 4096

    @classmethod
    def from_env(cls) -> "HttpLogSettings":
        """
        - `SURVEY_HTTP_LOG=1` enables middleware
        - `SURVEY_HTTP_LOG_HEADERS=1` logs request/response headers (masked)
        - `SURVEY_HTTP_LOG_BODY_MAX_BYTES=4096` caps body bytes captured per request/response
        """
        raw_cap = (os.getenv("SURVEY_HTTP_LOG_BODY_MAX_BYTES") or "").strip()
        try:
            cap = int(raw_cap) if raw_cap else cls.max_body_bytes
        except ValueError:
            cap = cls.max_body_bytes
        return cls(
            enabled=(os.getenv("SURVEY_HTTP_LOG") or "").strip().lower() in _TRUTHY,
            log_headers=(os.getenv("SURVEY_HTTP_LOG_HEADERS") or "").strip().lower() in _TRUTHY,
            max_body_bytes=max(0, cap),
        )


def mask(value: Any) -> Any:
    """Replace the value of every sensitive key, at any depth."""
    if isinstance(value, dict):
        return {k: MASK if str(k).lower() in _SENSITIVE_KEYS else mask(v) for k, v in value.items()}
    if isinstance(value, list):
        return [mask(v) for v in value]
    return value


@dataclass
class _Side:
    """What we keep of one direction of the exchange."""

    cap: int
    headers: Headers = field(default_factory=list)
    body: bytearray = field(default_factory=bytearray)
    truncated: bool = False

    def capture(self, chunk: bytes) -> None:
        room = self.cap - len(self.body)
        if room > 0:
            self.body.extend(chunk[:room])
        if len(chunk) > max(room, 0):
            self.truncated = True

    def header(self, name: bytes) -> Optional[str]:
        for k, v in self.headers:
            if k.lower() == name:
                return v.decode("latin-1", errors="replace")
        return None

    def decoded_body(self) -> Any:
        ct = (self.header(b"content-type") or "").lower()
        text = bytes(self.body).decode("utf-8", errors="replace")
        if "application/json" in ct:
            try:
                return mask(json.loads(text))
            except (ValueError, RecursionError):
                return text
        if not ct or ct.startswith("text/"):
            return text
        return "<binary>"

    def summary(self, with_headers: bool) -> Dict[str, Any]:
        out: Dict[str, Any] = {"body": self.decoded_body(), "body_truncated": self.truncated}
        if with_headers:
            out["headers"] = {
                k.decode("latin-1").lower(): MASK
                if k.decode("latin-1").lower() in _SENSITIVE_KEYS
                else v.decode("latin-1", errors="replace")
                for k, v in self.headers
            }
        return out


class HttpLoggingMiddleware:
    def __init__(self, app: ASGIApp, *, settings: HttpLogSettings) -> None:
        self.app = app
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.perf_counter()
        cap = self.settings.max_body_bytes
        request = _Side(cap=cap, headers=list(scope.get("headers") or []))
        response = _Side(cap=cap)
        status: Optional[int] = None

        async def receive_wrapped() -> Message:
            message = await receive()
            if message.get("type") == "http.request" and cap:
                request.capture(message.get("body") or b"")
            return message

        async def send_wrapped(message: Message) -> None:
            nonlocal status
            if message.get("type") == "http.response.start":
                status = int(message.get("status") or 0)
                response.headers = list(message.get("headers") or [])
            elif message.get("type") == "http.response.body" and cap:
                response.capture(message.get("body") or b"")
            await send(message)

        err: Optional[BaseException] = None
        try:
            await self.app(scope, receive_wrapped, send_wrapped)
        except BaseException as e:  # noqa: BLE001 - logged, then re-raised
            err = e
            raise
        finally:
            record: Dict[str, Any] = {
                "id": request.header(b"x-request-id") or uuid.uuid4().hex[:12],
                "method": str(scope.get("method") or "").upper(),
                "path": str(scope.get("path") or ""),
                "status": status,
                "dur_ms": int((time.perf_counter() - started_at) * 1000),
                "request": request.summary(self.settings.log_headers),
                "response": response.summary(self.settings.log_headers),
            }
            if err is not None:
                record["error"] = {"type": type(err).__name__, "message": str(err)}
            logger.info(json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str))


def install_http_logging(app: Any, settings: Optional[HttpLogSettings] = None) -> None:
    settings = settings or HttpLogSettings.from_env()
    if not settings.enabled:
        return
    app.add_middleware(HttpLoggingMiddleware, settings=settings)
