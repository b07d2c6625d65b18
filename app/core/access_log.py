"""
Per-request access log.

AccessLogMiddleware is a plain ASGI middleware: it wraps ``send`` to capture
the response status and emits the log line only after the wrapped app has
returned, i.e. after the last body chunk was sent. One line per request,
also when the app raises (logged as 500, exception re-raised).
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.log_config import ACCESS_LOGGER_NAME

_access_logger = logging.getLogger(ACCESS_LOGGER_NAME)


def _iso_now() -> str:
    """UTC timestamp with millisecond precision and Z suffix, e.g. 2024-05-01T10:00:00.123Z."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _get_client_ip(scope: Scope, headers: Headers) -> str | None:
    """Client IP: X-Forwarded-For as sent, else the transport peer address."""
    xff = headers.get("x-forwarded-for")
    if xff:
        return xff
    client = scope.get("client")
    return client[0] if client else None


def _request_url(scope: Scope) -> str:
    """Path plus query string, as the client requested it."""
    path = scope["path"]
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def build_entry(
    scope: Scope, status: int, duration_ms: float
) -> dict[str, Any]:
    headers = Headers(scope=scope)
    return {
        "timestamp": _iso_now(),
        "method": scope["method"],
        "url": _request_url(scope),
        "clientIp": _get_client_ip(scope, headers),
        "host": headers.get("host"),
        "status": status,
        "durationMs": round(duration_ms, 3),
        "userAgent": headers.get("user-agent"),
    }


class AccessLogMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            entry = build_entry(scope, status, duration_ms)
            _access_logger.info(json.dumps(entry))
