"""Shared-token authentication for inbound requests."""

import hmac
import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from aiohttp import web

log = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/health"})

Handler: TypeAlias = Callable[[web.Request], Awaitable[web.StreamResponse]]


def token_auth_middleware(token: str) -> Callable[..., Awaitable[web.StreamResponse]]:
    """Require ``Authorization: Bearer <token>`` (or the bare token)."""

    @web.middleware
    async def _require_token(
        request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        if request.path in PUBLIC_PATHS:
            return await handler(request)

        header = request.headers.get("Authorization", "")
        supplied = header.removeprefix("Bearer ").strip()
        if not hmac.compare_digest(supplied.encode(), token.encode()):
            log.warning("Rejected unauthorized %s %s", request.method, request.path)
            return web.json_response({"errorMessage": "Unauthorized"}, status=401)

        return await handler(request)

    return _require_token
