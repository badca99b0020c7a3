import time
import uuid

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

logger = structlog.stdlib.get_logger("newsdesk.access")


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, so context bound here reaches the handlers)
# ---------------------------------------------------------------------------

class TimingMiddleware:
    """
    Pure ASGI middleware that tags every HTTP request with an id and logs
    one access line once the response has started.

    The id is bound with ``structlog.contextvars`` for the duration of the
    request, so every log line emitted while handling it (including the
    unhandled-exception log) carries ``request_id``.

    Response headers added:

    - ``X-Request-ID``: the caller's ``X-Request-ID`` header when present,
      otherwise a fresh UUID4.
    - ``X-Response-Time-Ms``: wall-clock time until the response started.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers") or []).get(b"x-request-id")
        request_id = incoming.decode("latin-1") if incoming else uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                message["headers"] = headers
                logger.info(
                    "request",
                    method=scope["method"],
                    path=scope["path"],
                    status=message["status"],
                    duration_ms=duration_ms,
                )
            await send(message)

        await self.app(scope, receive, send_wrapper)
