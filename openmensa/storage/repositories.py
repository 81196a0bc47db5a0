"""
Repositories mapping domain models onto the metadata storage.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from openmensa.core.errors import FieldError, ValidationError
from openmensa.core.models import AccessToken, Client, Identity, Meal, User
from openmensa.storage.base import Collections, DuplicateKeyError, MetadataStorage

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Persisted end users and their linked identities.

    The internal System and Anonymous users never end up in here, so
    listings only ever contain real accounts.
    """

    def __init__(self, metadata: MetadataStorage):
        self._metadata = metadata

    async def get(self, user_id: str) -> User | None:
        doc = await self._metadata.get(Collections.USERS, user_id)
        if doc is None:
            return None
        return await self._to_domain(doc)

    async def get_by_login(self, login: str) -> User | None:
        docs = await self._metadata.query(Collections.USERS, {"login": login}, limit=1)
        return await self._to_domain(docs[0]) if docs else None

    async def get_by_identity(self, provider: str, uid: str) -> User | None:
        docs = await self._metadata.query(
            Collections.IDENTITIES, {"key": _identity_key(provider, uid)}, limit=1
        )
        if not docs:
            return None
        return await self.get(docs[0]["user_id"])

    async def exists(self, user_id: str) -> bool:
        return await self._metadata.get(Collections.USERS, user_id) is not None

    async def all(self, limit: int = 100, offset: int = 0) -> list[User]:
        docs = await self._metadata.query(Collections.USERS, limit=limit, offset=offset)
        users = [await self._to_domain(doc) for doc in docs]
        return [u for u in users if not u.is_internal]

    async def save(self, user: User) -> User:
        """
        Insert or update a user.

        Raises ValidationError if the login was taken in the meantime.
        """
        if user.is_internal:
            raise ValueError(f"Internal user '{user.login}' cannot be persisted")
        data = user.model_dump(mode="json", exclude={"identities", "admin"})
        try:
            await self._metadata.save(Collections.USERS, user.id, data, unique=("login",))
        except DuplicateKeyError:
            raise ValidationError([FieldError("login", "has already been taken")])
        for identity in user.identities:
            await self.save_identity(identity)
        return user

    async def save_identity(self, identity: Identity) -> Identity:
        data = identity.model_dump(mode="json")
        data["key"] = _identity_key(identity.provider, identity.uid)
        await self._metadata.save(Collections.IDENTITIES, identity.id, data, unique=("key",))
        return identity

    async def delete(self, user_id: str) -> bool:
        for doc in await self._metadata.query(Collections.IDENTITIES, {"user_id": user_id}):
            await self._metadata.delete(Collections.IDENTITIES, doc["id"])
        return await self._metadata.delete(Collections.USERS, user_id)

    async def _to_domain(self, doc: dict[str, Any]) -> User:
        identities = await self._metadata.query(Collections.IDENTITIES, {"user_id": doc["id"]})
        return User.model_validate({**doc, "identities": identities})


def _identity_key(provider: str, uid: str) -> str:
    return f"{provider}:{uid}"


class ClientRepository:
    """API client applications."""

    def __init__(self, metadata: MetadataStorage):
        self._metadata = metadata

    async def get(self, client_id: str) -> Client | None:
        doc = await self._metadata.get(Collections.CLIENTS, client_id)
        return Client.model_validate(doc) if doc else None

    async def save(self, client: Client) -> Client:
        await self._metadata.save(Collections.CLIENTS, client.id, client.model_dump(mode="json"))
        return client


class AccessTokenRepository:
    """Issued access tokens, kept so they can be looked up and revoked."""

    def __init__(self, metadata: MetadataStorage):
        self._metadata = metadata

    async def get(self, token_id: str) -> AccessToken | None:
        doc = await self._metadata.get(Collections.ACCESS_TOKENS, token_id)
        return AccessToken.model_validate(doc) if doc else None

    async def save(self, token: AccessToken) -> AccessToken:
        await self._metadata.save(
            Collections.ACCESS_TOKENS, token.id, token.model_dump(mode="json")
        )
        return token

    async def revoke(self, token_id: str) -> bool:
        return await self._metadata.update(Collections.ACCESS_TOKENS, token_id, {"revoked": True})

    async def revoke_for_user(self, user_id: str) -> int:
        docs = await self._metadata.query(
            Collections.ACCESS_TOKENS, {"user_id": user_id}, limit=10_000
        )
        for doc in docs:
            await self.revoke(doc["id"])
        return len(docs)


class MealRepository:
    """Meals per cafeteria and day."""

    def __init__(self, metadata: MetadataStorage):
        self._metadata = metadata

    async def get(self, meal_id: str) -> Meal | None:
        doc = await self._metadata.get(Collections.MEALS, meal_id)
        return Meal.model_validate(doc) if doc else None

    async def find(
        self,
        cafeteria_id: str | None = None,
        day: date | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Meal]:
        filters: dict[str, Any] = {}
        if cafeteria_id:
            filters["cafeteria_id"] = cafeteria_id
        if day:
            filters["date"] = day.isoformat()
        docs = await self._metadata.query(Collections.MEALS, filters, limit=limit, offset=offset)
        return [Meal.model_validate(doc) for doc in docs]

    async def save(self, meal: Meal) -> Meal:
        await self._metadata.save(Collections.MEALS, meal.id, meal.model_dump(mode="json"))
        return meal

    async def delete(self, meal_id: str) -> bool:
        return await self._metadata.delete(Collections.MEALS, meal_id)
