"""
Tests for access tokens and identity resolution.
"""

from datetime import timedelta

import jwt
import pytest

from openmensa.auth.context import (
    RequestContext,
    current_client,
    current_user,
    request_scope,
    resolve_context,
)
from openmensa.auth.tokens import TokenExpiredError, TokenInvalidError, decode_token
from openmensa.config import get_settings
from openmensa.core.internal_users import anonymous_user


class TestResolve:
    async def test_valid_token(self, token_store, make_user, make_client):
        user = await make_user()
        client = await make_client()
        issued = await token_store.issue(user, client=client)

        resolved = await token_store.resolve(issued.access_token)
        assert resolved.user.id == user.id
        assert resolved.client.id == client.id
        assert resolved.scope is None

    async def test_scope_is_resolved(self, token_store, make_user):
        issued = await token_store.issue(await make_user(), scope="read")
        resolved = await token_store.resolve(issued.access_token)
        assert resolved.scope.name == "read"
        assert resolved.scope.permits("show")
        assert not resolved.scope.permits("update")

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    async def test_missing_or_garbage_token(self, token_store, token):
        assert await token_store.resolve(token) == (None, None, None)

    async def test_expired_token(self, token_store, make_user):
        issued = await token_store.issue(await make_user(), expires_in=timedelta(seconds=-5))
        assert (await token_store.resolve(issued.access_token)).user is None

    async def test_foreign_signature(self, token_store, make_user):
        issued = await token_store.issue(await make_user())
        payload = jwt.decode(issued.access_token, options={"verify_signature": False})
        forged = jwt.encode(payload, "not-our-secret", algorithm="HS256")
        assert (await token_store.resolve(forged)).user is None

    async def test_revoked_token(self, token_store, make_user):
        issued = await token_store.issue(await make_user())
        assert await token_store.revoke(issued.access_token)
        assert (await token_store.resolve(issued.access_token)).user is None

    async def test_destroyed_user(self, token_store, make_user, user_service):
        user = await make_user()
        issued = await token_store.issue(user)
        await user_service.destroy_record(user)
        assert (await token_store.resolve(issued.access_token)).user is None


class TestDecode:
    async def test_expired_raises(self, token_store, make_user):
        issued = await token_store.issue(await make_user(), expires_in=timedelta(seconds=-5))
        with pytest.raises(TokenExpiredError):
            decode_token(issued.access_token)

    def test_invalid_raises(self):
        with pytest.raises(TokenInvalidError):
            decode_token("not-a-jwt")

    def test_claims_are_required(self):
        settings = get_settings()
        token = jwt.encode({"foo": "bar"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        with pytest.raises(TokenInvalidError):
            decode_token(token)


class TestRequestContext:
    async def test_anonymous_without_token(self, token_store):
        ctx = await resolve_context(token_store, None)
        assert ctx.user is anonymous_user()
        assert ctx.client is None
        assert ctx.is_anonymous
        assert not ctx.is_authenticated

    async def test_token_owner(self, token_store, make_user):
        user = await make_user()
        issued = await token_store.issue(user)
        ctx = await resolve_context(token_store, issued.access_token)
        assert ctx.user.id == user.id
        assert ctx.is_authenticated

    async def test_scope_applies_to_checks(self, token_store, make_admin):
        admin = await make_admin()
        issued = await token_store.issue(admin, scope="read")
        ctx = await resolve_context(token_store, issued.access_token)
        assert ctx.can("index", type(admin))
        assert not ctx.can("create", type(admin))

    async def test_request_scope_sets_and_restores(self, make_user, make_client):
        user = await make_user()
        client = await make_client()

        with request_scope(RequestContext(user=user, client=client)):
            assert current_user() is user
            assert current_client() is client

        assert current_user() is anonymous_user()
        assert current_client() is None

    def test_system_context(self):
        ctx = RequestContext.system()
        assert ctx.user.is_admin
        assert not ctx.is_anonymous
