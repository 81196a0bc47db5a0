# =============================================================================
# Access Tokens
# =============================================================================
#
# API clients authenticate with bearer access tokens:
#   - tokens are signed JWTs carrying user, client and scope
#   - every issued token is recorded so it can be revoked
#   - resolving never fails loudly: bad tokens simply mean "anonymous"
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

import jwt
from pydantic import BaseModel

from openmensa.auth.abilities import get_scope
from openmensa.config import get_settings
from openmensa.core.models import AbilityScope, AccessToken, Client, User
from openmensa.core.utils import utc_now
from openmensa.storage.repositories import (
    AccessTokenRepository,
    ClientRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================


class TokenPayload(BaseModel):
    """JWT access token payload."""
    sub: str  # user_id
    jti: str  # AccessToken record id
    exp: datetime
    iat: datetime
    cid: str | None = None  # client_id
    scope: str | None = None


class TokenResponse(BaseModel):
    """Access token handed out to a client."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    scope: str | None = None


class Resolution(NamedTuple):
    """Who is behind a token. All None for missing or invalid tokens."""
    user: User | None
    client: Client | None
    scope: AbilityScope | None


ANONYMOUS_RESOLUTION = Resolution(None, None, None)


# =============================================================================
# Errors
# =============================================================================


class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


# =============================================================================
# Encoding
# =============================================================================


def encode_token(record: AccessToken) -> str:
    settings = get_settings()
    payload = {
        "sub": record.user_id,
        "jti": record.id,
        "iat": record.created_at,
        "exp": record.expires_at,
    }
    if record.client_id:
        payload["cid"] = record.client_id
    if record.scope:
        payload["scope"] = record.scope
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a JWT access token.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "jti", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    return TokenPayload(
        sub=payload["sub"],
        jti=payload["jti"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc),
        cid=payload.get("cid"),
        scope=payload.get("scope"),
    )


# =============================================================================
# Token Store
# =============================================================================


class TokenStore:
    """Issues, resolves and revokes access tokens."""

    def __init__(
        self,
        tokens: AccessTokenRepository,
        users: UserRepository,
        clients: ClientRepository,
    ):
        self.tokens = tokens
        self.users = users
        self.clients = clients

    async def issue(
        self,
        user: User,
        client: Client | None = None,
        scope: str | None = None,
        expires_in: timedelta | None = None,
    ) -> TokenResponse:
        """Create and record a new access token for `user`."""
        if expires_in is None:
            expires_in = timedelta(minutes=get_settings().jwt_access_token_expire_minutes)
        now = utc_now()
        record = AccessToken(
            user_id=user.id,
            client_id=client.id if client else None,
            scope=scope,
            created_at=now,
            expires_at=now + expires_in,
        )
        await self.tokens.save(record)
        logger.info(f"Issued access token {record.id} for '{user.login}'")
        return TokenResponse(
            access_token=encode_token(record),
            expires_in=int(expires_in.total_seconds()),
            scope=scope,
        )

    async def resolve(self, token: str | None) -> Resolution:
        """
        Resolve a bearer token to its user, client and scope.

        Missing, malformed, expired, revoked or orphaned tokens all resolve
        to (None, None, None).
        """
        if not token:
            return ANONYMOUS_RESOLUTION

        try:
            payload = decode_token(token)
        except TokenError as e:
            logger.debug(f"Ignoring access token: {e}")
            return ANONYMOUS_RESOLUTION

        record = await self.tokens.get(payload.jti)
        if record is None or record.revoked or record.user_id != payload.sub:
            logger.debug(f"Ignoring unknown or revoked access token {payload.jti}")
            return ANONYMOUS_RESOLUTION

        user = await self.users.get(record.user_id)
        if user is None:
            return ANONYMOUS_RESOLUTION

        client = await self.clients.get(record.client_id) if record.client_id else None
        return Resolution(user, client, get_scope(record.scope))

    async def revoke(self, token: str) -> bool:
        try:
            payload = decode_token(token)
        except TokenError:
            return False
        return await self.tokens.revoke(payload.jti)
