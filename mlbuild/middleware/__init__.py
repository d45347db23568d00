"""Correlation-ID middleware -- tags every HTTP request with a trace id.

Implemented as a pure ASGI middleware (not BaseHTTPMiddleware) so it
never buffers upload bodies.
"""

import uuid

from starlette.types import ASGIApp, Receive, Scope, Send

# Accepted inbound headers, first match wins.
_INBOUND_HEADERS = (b"x-request-id", b"x-correlation-id")


class RequestIDMiddleware:
    """Stores a request id in ``request.state.request_id``.

    An id supplied by the client in ``X-Request-ID`` or
    ``X-Correlation-ID`` is reused; otherwise a random UUID-4 is
    generated.  The id is echoed back in both response headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = ""
        for name in _INBOUND_HEADERS:
            request_id = headers.get(name, b"").decode("latin-1").strip()
            if request_id:
                break
        request_id = request_id[:128] or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                raw_headers: list = list(message.get("headers", []))
                encoded = request_id.encode("latin-1")
                raw_headers.append((b"x-request-id", encoded))
                raw_headers.append((b"x-correlation-id", encoded))
                message = {**message, "headers": raw_headers}
            await send(message)

        await self.app(scope, receive, send_with_id)
