"""Sentry context middleware to capture request context in error reports."""

import uuid

import sentry_sdk
from starlette.types import ASGIApp, Receive, Scope, Send

from tilldesk.core.logging import get_request_id


class SentryContextMiddleware:
    """
    Middleware to inject structured context into Sentry error reports.

    Captures:
    - request_id: Unique request identifier
    - user_id: Acting user forwarded by the identity provider (if any)
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Process request with Sentry context injection."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = None
        user_id = None
        for name, value in scope.get("headers", []):
            lowered = name.lower()
            if lowered == b"x-request-id":
                request_id = value.decode("latin1")
            elif lowered == b"x-user-id":
                user_id = value.decode("latin1")

        if not request_id:
            request_id = get_request_id()
        if not request_id or request_id == "no-request-id":
            request_id = str(uuid.uuid4())

        with sentry_sdk.isolation_scope() as sentry_scope:
            sentry_scope.set_tag("request_id", request_id)
            if user_id:
                sentry_scope.set_user({"id": user_id})
                sentry_scope.set_tag("user_id", user_id)
            sentry_scope.set_context(
                "request",
                {
                    "method": scope.get("method"),
                    "path": scope.get("path"),
                    "request_id": request_id,
                },
            )
            await self.app(scope, receive, send)
