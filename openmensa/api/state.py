"""
Application state - storage, repositories and services, built once per app.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from openmensa.auth.tokens import TokenStore
from openmensa.integrations.oauth import OAuthManager
from openmensa.services.meals import MealService
from openmensa.services.users import UserService
from openmensa.storage import (
    AccessTokenRepository,
    ClientRepository,
    MealRepository,
    StorageProvider,
    UserRepository,
)


@dataclass
class AppState:
    """Everything request handlers need, wired at startup."""

    storage: StorageProvider
    users: UserService
    meals: MealService
    tokens: TokenStore
    oauth: OAuthManager
    clients: ClientRepository

    @classmethod
    def build(cls, storage: StorageProvider, oauth: OAuthManager | None = None) -> AppState:
        user_repo = UserRepository(storage.metadata)
        token_repo = AccessTokenRepository(storage.metadata)
        clients = ClientRepository(storage.metadata)
        return cls(
            storage=storage,
            users=UserService(user_repo, token_repo),
            meals=MealService(MealRepository(storage.metadata)),
            tokens=TokenStore(token_repo, user_repo, clients),
            oauth=oauth or OAuthManager(storage.cache),
            clients=clients,
        )


def get_state(request: Request) -> AppState:
    return request.app.state.openmensa
