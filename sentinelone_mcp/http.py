from __future__ import annotations

import hmac
import logging

from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from .errors import ConfigurationError
from .server import mcp
from .settings import Settings

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
PUBLIC_PATHS = frozenset({"/health"})


class BearerAuthMiddleware:
    """Reject HTTP requests that do not carry ``Authorization: Bearer <token>``."""

    def __init__(self, app: ASGIApp, token: str):
        self.app = app
        self._token = token.encode()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in PUBLIC_PATHS:
            await self.app(scope, receive, send)
            return

        header = Headers(scope=scope).get("authorization", "")
        scheme, _, presented = header.partition(" ")
        if scheme.lower() != "bearer" or not hmac.compare_digest(presented.strip().encode(), self._token):
            logger.warning("Rejected unauthenticated request to %s", scope.get("path"))
            response = JSONResponse(
                {"error": "unauthorized", "error_description": "Bearer token required"},
                status_code=401,
                headers={"WWW-Authenticate": 'Bearer realm="SentinelOne MCP"'},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


def build_http_app(settings: Settings):
    """Streamable HTTP app with bearer auth in front of every route but /health."""
    if not settings.mcp_auth_token:
        raise ConfigurationError("Configuration error: MCP_AUTH_TOKEN is required for the http transport")
    middleware = [Middleware(BearerAuthMiddleware, token=settings.mcp_auth_token)]
    return mcp.http_app(path=MCP_PATH, middleware=middleware)
