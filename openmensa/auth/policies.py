"""
Request authentication - the glue between HTTP and the auth context.

Every request passes RequestContextMiddleware, which resolves the bearer
token (if any) into a RequestContext and publishes it as the current user,
client and locale until the response is sent. Route handlers receive it via:

    ctx: RequestContext = Depends(get_request_context)

Authorization itself is not decided here: services call ctx.require(...)
and the API turns AccessDenied into a 401/403 response.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from starlette.types import ASGIApp, Receive, Scope, Send

from openmensa.auth.context import RequestContext, request_scope, resolve_context
from openmensa.auth.tokens import TokenStore
from openmensa.i18n import negotiate_locale, use_locale
from openmensa.integrations.sentry import set_user

logger = logging.getLogger(__name__)

CONTEXT_KEY = "request_context"


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer ...` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class RequestContextMiddleware:
    """
    Resolve the acting user once per request.

    Implemented as plain ASGI middleware so the context variables are set
    and reset in the same task that runs the endpoint.
    """

    def __init__(self, app: ASGIApp, token_store: TokenStore):
        self.app = app
        self.token_store = token_store

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope["headers"]}
        ctx = await resolve_context(self.token_store, bearer_token(headers.get("authorization")))
        scope.setdefault("state", {})[CONTEXT_KEY] = ctx

        if ctx.is_authenticated:
            set_user(ctx.user.id, ctx.user.login)

        with request_scope(ctx), use_locale(negotiate_locale(headers.get("accept-language"))):
            await self.app(scope, receive, send)


def get_request_context(request: Request) -> RequestContext:
    """The context resolved by RequestContextMiddleware (anonymous if absent)."""
    ctx = getattr(request.state, CONTEXT_KEY, None)
    if ctx is None:
        return RequestContext.anonymous()
    return ctx


def require_login(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Dependency for endpoints that make no sense without a user."""
    if not ctx.is_authenticated:
        raise HTTPException(status_code=401, detail="Authentication required")
    return ctx
