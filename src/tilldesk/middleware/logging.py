"""Request ID and access logging middleware."""

import time
import uuid

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tilldesk.core.logging import get_logger, set_request_id

REQUEST_ID_HEADER = b"x-request-id"


class RequestIDMiddleware:
    """
    Give every HTTP request an id and log its start and completion.

    An incoming X-Request-ID (e.g. from the gateway) is reused so log lines can
    be correlated across services; otherwise a UUID4 is generated. The id is
    bound into the structlog context for the duration of the request and echoed
    back in the response headers.
    """

    def __init__(self, app: ASGIApp):
        self.app = app
        self.logger = get_logger(__name__)

    @staticmethod
    def _incoming_request_id(scope: Scope) -> str | None:
        for name, value in scope.get("headers", []):
            if name.lower() == REQUEST_ID_HEADER and value:
                return value.decode("latin1")
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or str(uuid.uuid4())

        # Drop context left over from a previous request on this task
        structlog.contextvars.clear_contextvars()
        set_request_id(request_id)

        started = time.perf_counter()
        self.logger.info("request.start", method=scope["method"], path=scope["path"])

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (REQUEST_ID_HEADER, request_id.encode("latin1")),
                ]
                self.logger.info(
                    "request.complete",
                    method=scope["method"],
                    path=scope["path"],
                    status_code=message["status"],
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
            await send(message)

        await self.app(scope, receive, send_with_request_id)
