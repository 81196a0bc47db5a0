# =============================================================================
# OAuth Integration (GitHub, Twitter)
# =============================================================================
#
# Setup (GitHub):
#   1. Go to https://github.com/settings/developers
#   2. Create an OAuth App
#   3. Authorization callback URL: https://yourdomain.com/auth/github/callback
#   4. Put client id/secret into config/omniauth.yml (or GITHUB_OAUTH_KEY/_SECRET)
#
# Setup (Twitter):
#   1. Go to https://developer.twitter.com/en/portal/projects-and-apps
#   2. Enable OAuth 2.0 (confidential client)
#   3. Callback URI: https://yourdomain.com/auth/twitter/callback
#   4. Put client id/secret into config/omniauth.yml (or TWITTER_OAUTH_KEY/_SECRET)
#
# =============================================================================

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from openmensa.config import get_settings
from openmensa.config_loader import ProviderCredentials, provider_credentials
from openmensa.core.utils import generate_token
from openmensa.storage.base import CacheStorage

logger = logging.getLogger(__name__)

STATE_TTL = 600  # seconds a login attempt may take


# =============================================================================
# Models
# =============================================================================


class OAuthUserInfo(BaseModel):
    """User info retrieved from an OAuth provider."""
    provider: str  # "github", "twitter"
    uid: str
    nickname: str | None = None
    name: str | None = None
    email: str | None = None


class OAuthError(Exception):
    """OAuth flow error."""
    pass


class PendingLogin(BaseModel):
    """What we remember between redirect and callback."""
    provider: str
    code_verifier: str | None = None


_transient = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    reraise=True,
)


# =============================================================================
# Providers
# =============================================================================


class OAuthProvider:
    """Authorization code flow shared by the providers."""

    name: str = ""
    AUTHORIZE_URL: str = ""
    TOKEN_URL: str = ""
    USERINFO_URL: str = ""
    SCOPE: str = ""
    uses_pkce: bool = False

    def __init__(self, credentials: ProviderCredentials, base_url: str | None = None):
        self.credentials = credentials
        self.base_url = (base_url or get_settings().base_url).rstrip("/")

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}/auth/{self.name}/callback"

    def get_authorize_url(self, state: str, code_verifier: str | None = None) -> str:
        """URL to redirect the user to for sign-in."""
        params = {
            "client_id": self.credentials.key,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.SCOPE,
            "state": state,
        }
        if code_verifier:
            params["code_challenge"] = pkce_challenge(code_verifier)
            params["code_challenge_method"] = "S256"
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def token_request(self, code: str, code_verifier: str | None) -> dict[str, Any]:
        data = {
            "client_id": self.credentials.key,
            "client_secret": self.credentials.secret,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        return data

    @_transient
    async def exchange_code(self, code: str, code_verifier: str | None = None) -> str:
        """Exchange the authorization code for a provider access token."""
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.TOKEN_URL,
                data=self.token_request(code, code_verifier),
                headers={"Accept": "application/json"},
            )

        if response.status_code != 200:
            logger.error(f"{self.name} token exchange failed: {response.text}")
            raise OAuthError(f"Token exchange failed: {response.status_code}")

        data = response.json()
        if "access_token" not in data:
            logger.error(f"{self.name} token exchange returned no token: {data}")
            raise OAuthError(data.get("error_description") or "Token exchange failed")
        return data["access_token"]

    @_transient
    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.status_code != 200:
            logger.error(f"{self.name} userinfo failed: {response.text}")
            raise OAuthError(f"Failed to get user info: {response.status_code}")
        return response.json()

    def parse_profile(self, data: dict[str, Any]) -> OAuthUserInfo:
        raise NotImplementedError

    async def authenticate(self, code: str, code_verifier: str | None = None) -> OAuthUserInfo:
        """Complete the flow: exchange code and get user info."""
        access_token = await self.exchange_code(code, code_verifier)
        return self.parse_profile(await self.fetch_profile(access_token))


class GitHubOAuth(OAuthProvider):
    name = "github"
    AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
    TOKEN_URL = "https://github.com/login/oauth/access_token"
    USERINFO_URL = "https://api.github.com/user"
    SCOPE = "user:email"

    def parse_profile(self, data: dict[str, Any]) -> OAuthUserInfo:
        return OAuthUserInfo(
            provider=self.name,
            uid=str(data["id"]),
            nickname=data.get("login"),
            name=data.get("name") or data.get("login"),
            email=data.get("email"),
        )


class TwitterOAuth(OAuthProvider):
    name = "twitter"
    AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
    TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
    USERINFO_URL = "https://api.twitter.com/2/users/me"
    SCOPE = "users.read tweet.read"
    uses_pkce = True

    def parse_profile(self, data: dict[str, Any]) -> OAuthUserInfo:
        user = data.get("data", data)
        return OAuthUserInfo(
            provider=self.name,
            uid=str(user["id"]),
            nickname=user.get("username"),
            name=user.get("name") or user.get("username"),
        )


PROVIDER_CLASSES: dict[str, type[OAuthProvider]] = {
    "github": GitHubOAuth,
    "twitter": TwitterOAuth,
}


def pkce_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


# =============================================================================
# OAuth Manager
# =============================================================================


class OAuthManager:
    """
    All configured providers plus the pending login states.

    States are kept in the cache storage and consumed on callback, which
    protects the callback against CSRF and replay.
    """

    def __init__(
        self,
        cache: CacheStorage,
        credentials: dict[str, ProviderCredentials] | None = None,
    ):
        self.cache = cache
        if credentials is None:
            credentials = provider_credentials()
        self.providers: dict[str, OAuthProvider] = {
            name: PROVIDER_CLASSES[name](creds)
            for name, creds in credentials.items()
            if name in PROVIDER_CLASSES
        }

    def get_available_providers(self) -> list[str]:
        return sorted(self.providers)

    def get_provider(self, name: str) -> OAuthProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise OAuthError(f"Provider '{name}' not available")
        return provider

    async def get_authorize_url(self, name: str) -> str:
        """Start a login: remember a fresh state and build the redirect URL."""
        provider = self.get_provider(name)
        state = generate_token(24)
        verifier = generate_token(48) if provider.uses_pkce else None
        pending = PendingLogin(provider=name, code_verifier=verifier)
        await self.cache.set(f"oauth_state:{state}", pending.model_dump(), ttl=STATE_TTL)
        return provider.get_authorize_url(state, verifier)

    async def authenticate(self, name: str, code: str, state: str) -> OAuthUserInfo:
        """Finish a login started with get_authorize_url."""
        data = await self.cache.pop(f"oauth_state:{state}")
        if data is None:
            raise OAuthError("Invalid or expired state parameter")
        pending = PendingLogin.model_validate(data)
        if pending.provider != name:
            raise OAuthError("State does not belong to this provider")
        return await self.get_provider(name).authenticate(code, pending.code_verifier)
