"""
User lifecycle: listing, registration, profile updates, destruction and
linking of external identities.

Every public operation takes the RequestContext of the acting user and
checks abilities, mass-assignment rules and validation in that order.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from openmensa.auth.abilities import Action
from openmensa.auth.context import RequestContext
from openmensa.auth.safe_attributes import Operation, sanitize_attributes
from openmensa.core.errors import NotFound
from openmensa.core.models import Identity, User
from openmensa.core.roles import RESERVED_LOGINS
from openmensa.core.validation import EMAIL_PATTERN, validate_user
from openmensa.storage.repositories import AccessTokenRepository, UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Operations on user accounts."""

    def __init__(self, users: UserRepository, tokens: AccessTokenRepository | None = None):
        self.users = users
        self.tokens = tokens

    # =========================================================================
    # Queries
    # =========================================================================

    async def list(self, ctx: RequestContext, limit: int = 100, offset: int = 0) -> list[User]:
        ctx.require(Action.INDEX, User)
        return await self.users.all(limit=limit, offset=offset)

    async def get(self, ctx: RequestContext, user_id: str) -> User:
        user = await self._find(ctx, Action.SHOW, user_id)
        ctx.require(Action.SHOW, user)
        return user

    async def _find(self, ctx: RequestContext, action: Action, user_id: str) -> User:
        """
        Look up a user for `action`.

        A missing record is only reported to actors who may perform the
        action on users at all; everyone else is denied as usual.
        """
        user = await self.users.get(user_id)
        if user is None:
            ctx.require(action, User)
            raise NotFound("User", user_id)
        return user

    # =========================================================================
    # Commands
    # =========================================================================

    def build(self, ctx: RequestContext, attributes: dict[str, Any]) -> User:
        """A new, unsaved user with the attributes `ctx` may set."""
        user = User()
        user.assign(sanitize_attributes(ctx.user, user, Operation.CREATE, attributes))
        return user

    async def save(self, user: User) -> User:
        """
        Validate and persist a user.

        Raises:
            ValidationError: with every failing field; nothing is stored
        """
        result = await validate_user(user, self.users)
        result.raise_for_errors()
        return await self.users.save(user)

    async def create(self, ctx: RequestContext, attributes: dict[str, Any]) -> User:
        ctx.require(Action.CREATE, User)
        user = await self.save(self.build(ctx, attributes))
        logger.info(f"User '{user.login}' created by '{ctx.user.login}'")
        return user

    async def update(self, ctx: RequestContext, user_id: str, attributes: dict[str, Any]) -> User:
        user = await self._find(ctx, Action.UPDATE, user_id)
        ctx.require(Action.UPDATE, user)

        changes = sanitize_attributes(ctx.user, user, Operation.UPDATE, attributes)
        updated = user.model_copy(deep=True)
        updated.assign(changes)
        await self.save(updated)
        logger.info(f"User '{updated.login}' updated by '{ctx.user.login}': {sorted(changes)}")
        return updated

    async def destroy(self, ctx: RequestContext, user_id: str) -> bool:
        user = await self._find(ctx, Action.DESTROY, user_id)
        ctx.require(Action.DESTROY, user)
        return await self.destroy_record(user)

    async def destroy_record(self, user: User) -> bool:
        """
        Remove a user and revoke its tokens.

        Returns False (and keeps the record) for users that are not
        destructible, i.e. administrators and internal users.
        """
        if not user.is_destructible:
            logger.warning(f"Refusing to destroy {user.role.value} user '{user.login}'")
            return False
        if self.tokens is not None:
            await self.tokens.revoke_for_user(user.id)
        deleted = await self.users.delete(user.id)
        if deleted:
            logger.info(f"User '{user.login}' destroyed")
        return deleted

    # =========================================================================
    # External identities
    # =========================================================================

    async def find_or_create_from_identity(
        self,
        provider: str,
        uid: str,
        nickname: str | None,
        name: str | None,
        email: str | None = None,
    ) -> User:
        """
        The user owning an external identity, registering one if needed.

        New users get a login derived from the provider nickname, made
        unique by appending a counter.
        """
        existing = await self.users.get_by_identity(provider, uid)
        if existing is not None:
            return existing

        login = await self._available_login(nickname or f"{provider}_{uid}")
        ctx = RequestContext.system()
        user = self.build(ctx, {
            "login": login,
            "name": name or nickname or login,
            "email": email if email and EMAIL_PATTERN.match(email) else None,
        })
        user.identities.append(Identity(provider=provider, uid=uid, user_id=user.id))
        await self.save(user)
        logger.info(f"Registered '{user.login}' through {provider}")
        return user

    async def _available_login(self, wanted: str) -> str:
        base = re.sub(r"[^A-Za-z0-9_.\-]+", "_", wanted).strip("_") or "user"
        if base.lower() in RESERVED_LOGINS:
            base = f"{base}_user"
        login, counter = base, 1
        while await self.users.get_by_login(login) is not None:
            counter += 1
            login = f"{base}{counter}"
        return login
