"""
Shared fixtures.

Factories mirror how accounts come to exist in practice: `make_user` and
`make_admin` build persisted end users, the internal users come from their
accessors.
"""

import asyncio
import itertools

import pytest
from fastapi.testclient import TestClient

from openmensa.api.app import create_app
from openmensa.auth import context as auth_context
from openmensa.auth.context import RequestContext
from openmensa.auth.tokens import TokenStore
from openmensa.config_loader import ProviderCredentials
from openmensa.core.internal_users import reset_internal_users
from openmensa.core.models import Client, User
from openmensa.core.roles import Role
from openmensa.integrations.oauth import OAuthManager
from openmensa.services.meals import MealService
from openmensa.services.users import UserService
from openmensa.storage import (
    AccessTokenRepository,
    ClientRepository,
    MealRepository,
    UserRepository,
    create_local_storage,
)


_counter = itertools.count(1)


def user_attributes(**overrides):
    n = next(_counter)
    return {
        "login": f"user{n}",
        "name": f"User {n}",
        "email": f"user{n}@example.org",
        **overrides,
    }


# =============================================================================
# Process state
# =============================================================================


@pytest.fixture(autouse=True)
def clean_process_state():
    """Fresh internal users and no current user/client for every test."""
    reset_internal_users()
    user_token = auth_context._current_user.set(None)
    client_token = auth_context._current_client.set(None)
    yield
    auth_context._current_client.reset(client_token)
    auth_context._current_user.reset(user_token)
    reset_internal_users()


# =============================================================================
# Storage and services
# =============================================================================


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def users(storage):
    return UserRepository(storage.metadata)


@pytest.fixture
def access_tokens(storage):
    return AccessTokenRepository(storage.metadata)


@pytest.fixture
def clients(storage):
    return ClientRepository(storage.metadata)


@pytest.fixture
def user_service(users, access_tokens):
    return UserService(users, access_tokens)


@pytest.fixture
def meal_service(storage):
    return MealService(MealRepository(storage.metadata))


@pytest.fixture
def token_store(access_tokens, users, clients):
    return TokenStore(access_tokens, users, clients)


@pytest.fixture
def system_ctx():
    return RequestContext.system()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_user(user_service):
    """Create and persist a regular user."""
    async def factory(**overrides):
        attrs = user_attributes(**overrides)
        role = attrs.pop("role", Role.REGULAR)
        return await user_service.save(User(role=role, **attrs))
    return factory


@pytest.fixture
def make_admin(make_user):
    async def factory(**overrides):
        return await make_user(role=Role.ADMIN, **overrides)
    return factory


@pytest.fixture
def make_client(clients):
    async def factory(name="Mensa App"):
        return await clients.save(Client(name=name))
    return factory


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def oauth(storage):
    return OAuthManager(
        storage.cache,
        credentials={
            "github": ProviderCredentials(key="gh-key", secret="gh-secret"),
            "twitter": ProviderCredentials(key="tw-key", secret="tw-secret"),
        },
    )


@pytest.fixture
def app(storage, oauth):
    return create_app(storage=storage, oauth=oauth)


@pytest.fixture
def state(app):
    return app.state.openmensa


@pytest.fixture
def http(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def seed(state):
    """
    Synchronous helpers to put data behind the HTTP client.

    Returns (user, bearer headers) pairs.
    """
    class Seed:
        def user(self, role=Role.REGULAR, scope=None, client=None, **overrides):
            attrs = user_attributes(**overrides)
            user = asyncio.run(state.users.save(User(role=role, **attrs)))
            token = asyncio.run(state.tokens.issue(user, client=client, scope=scope))
            return user, {"Authorization": f"Bearer {token.access_token}"}

        def admin(self, **overrides):
            return self.user(role=Role.ADMIN, **overrides)

        def client(self, name="Mensa App"):
            return asyncio.run(state.clients.save(Client(name=name)))

    return Seed()
