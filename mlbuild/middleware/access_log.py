"""HTTP access log middleware -- one structured METRIC line per request.

Captures method, path, status code, wall time, caller id and role (read
from the JWT, no DB call), request ID, and the error detail of 4xx/5xx
responses.  Writes to the ``mlbuild.access`` logger.
"""

from __future__ import annotations

import json
import logging
import time

import jwt as pyjwt
from starlette.types import ASGIApp, Receive, Scope, Send

from mlbuild.auth import decode_token

logger = logging.getLogger("mlbuild.access")

_SKIP_PREFIXES = ("/health", "/uploads", "/favicon.ico")


class AccessLogMiddleware:
    """ASGI middleware that logs every HTTP request as a structured METRIC line."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path: str = scope.get("path", "")
        if path.startswith(_SKIP_PREFIXES):
            await self.app(scope, receive, send)
            return

        method: str = scope.get("method", "?")
        state: dict = scope.get("state", {})
        user_id, role = _extract_user(scope)
        t0 = time.perf_counter()
        status_code = 0
        error_detail = ""

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code, error_detail
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif message["type"] == "http.response.body" and status_code >= 400:
                error_detail = _error_detail(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            if status_code == 0:
                status_code = 500
            raise
        finally:
            wall_ms = (time.perf_counter() - t0) * 1000
            _emit(
                method, path, status_code, wall_ms,
                user_id, role, state.get("request_id", "-"), error_detail,
            )


def _error_detail(body_bytes: bytes) -> str:
    if not body_bytes:
        return ""
    try:
        body = json.loads(body_bytes)
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    return str(body.get("detail", body.get("error", "")))[:200]


def _extract_user(scope: Scope) -> tuple[str, str]:
    """Decode the bearer token without a DB call.

    Returns (user_id, role) or ("-", "-") when absent or invalid.
    """
    headers = dict(scope.get("headers", []))
    auth = headers.get(b"authorization", b"").decode("utf-8", errors="ignore")
    if not auth.startswith("Bearer "):
        return ("-", "-")
    try:
        payload = decode_token(auth[7:])
    except pyjwt.PyJWTError:
        return ("-", "-")
    return (str(payload.get("sub", "-")), str(payload.get("role", "-")))


def _emit(
    method: str,
    path: str,
    status_code: int,
    wall_ms: float,
    user_id: str,
    role: str,
    request_id: str,
    error_detail: str,
) -> None:
    parts = [
        "METRIC | type=http_request",
        f"method={method}",
        f"path={path}",
        f"status={status_code}",
        f"wall_ms={wall_ms:.0f}",
        f"user={user_id}",
        f"role={role}",
        f"req_id={request_id}",
    ]
    if error_detail:
        # Pipes would break the METRIC field separator.
        parts.append(f"error={error_detail.replace('|', '/')}")
    line = " | ".join(parts)

    if status_code >= 500:
        logger.error(line)
    elif status_code >= 400:
        logger.warning(line)
    else:
        logger.info(line)
