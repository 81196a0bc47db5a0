"""
Request context - who is acting, through which client, with which scope.

A RequestContext is passed explicitly to services. For code that has no
context at hand (logging, model defaults) the acting user and client are
also published in context variables for exactly the duration of a request.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Iterator

from openmensa.auth import abilities
from openmensa.auth.abilities import Action
from openmensa.auth.tokens import Resolution, TokenStore
from openmensa.core.internal_users import anonymous_user, system_user
from openmensa.core.models import AbilityScope, Client, User
from openmensa.core.roles import Role


@dataclass
class RequestContext:
    """
    Authorization context for a request.

    Usage in services:
        ctx.require("update", user)   # raises AccessDenied if not allowed
        if ctx.can("destroy", user):
            ...
    """

    user: User = field(default_factory=anonymous_user)
    client: Client | None = None
    scope: AbilityScope | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user.is_logged

    @property
    def is_anonymous(self) -> bool:
        return self.user.role is Role.ANONYMOUS

    def can(self, action: Action | str, target: Any) -> bool:
        return abilities.can(self.user, action, target, self.scope)

    def require(self, action: Action | str, target: Any) -> None:
        abilities.require(self.user, action, target, self.scope)

    @classmethod
    def anonymous(cls) -> RequestContext:
        return cls()

    @classmethod
    def system(cls) -> RequestContext:
        """Context for internal operations (seeding, maintenance)."""
        return cls(user=system_user())

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> RequestContext:
        if resolution.user is None:
            return cls.anonymous()
        return cls(user=resolution.user, client=resolution.client, scope=resolution.scope)


# =============================================================================
# Request-scoped current user / client
# =============================================================================


_current_user: ContextVar[User | None] = ContextVar("current_user", default=None)
_current_client: ContextVar[Client | None] = ContextVar("current_client", default=None)


def current_user() -> User:
    """The acting user, Anonymous when nobody is set."""
    return _current_user.get() or anonymous_user()


def current_client() -> Client | None:
    return _current_client.get()


def set_current_user(user: User | None) -> None:
    """Set the acting user for the rest of the current context."""
    _current_user.set(user)


@contextmanager
def request_scope(ctx: RequestContext) -> Iterator[RequestContext]:
    """
    Publish `ctx` as current user/client for the enclosed block.

    Both are restored on exit, so nothing leaks into the next request.
    """
    user_token = _current_user.set(ctx.user)
    client_token = _current_client.set(ctx.client)
    try:
        yield ctx
    finally:
        _current_client.reset(client_token)
        _current_user.reset(user_token)


async def resolve_context(store: TokenStore, token: str | None) -> RequestContext:
    """Build the context for a request carrying an optional bearer token."""
    return RequestContext.from_resolution(await store.resolve(token))
