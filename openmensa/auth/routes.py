# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   GET  /auth/providers             - List configured OAuth providers
#   GET  /auth/{provider}/authorize  - Get the provider redirect URL
#   POST /auth/{provider}/callback   - Complete the flow, get an access token
#   GET  /auth/me                    - Current user
#   POST /auth/logout                - Revoke the presented access token
#
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from openmensa.api.state import AppState, get_state
from openmensa.auth.abilities import SCOPES
from openmensa.auth.context import RequestContext
from openmensa.auth.policies import bearer_token, require_login
from openmensa.auth.tokens import TokenResponse
from openmensa.integrations.oauth import OAuthError

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================


class OAuthCallbackRequest(BaseModel):
    code: str
    state: str
    client_id: str | None = None  # API client the token is meant for
    scope: str | None = None      # optional restriction, e.g. "read"


# =============================================================================
# OAuth Endpoints
# =============================================================================


@router.get("/providers")
async def list_oauth_providers(state: AppState = Depends(get_state)):
    """Providers configured for this environment."""
    return {"providers": state.oauth.get_available_providers()}


@router.get("/{provider}/authorize")
async def oauth_authorize(provider: str, state: AppState = Depends(get_state)):
    """
    Get the OAuth authorization URL.

    Redirect the user there to start the flow.
    """
    available = state.oauth.get_available_providers()
    if provider not in available:
        raise HTTPException(
            status_code=400,
            detail=f"Provider '{provider}' not available. Configured: {available}",
        )
    return {"authorize_url": await state.oauth.get_authorize_url(provider)}


@router.post("/{provider}/callback", response_model=TokenResponse)
async def oauth_callback(
    provider: str,
    data: OAuthCallbackRequest,
    state: AppState = Depends(get_state),
):
    """
    Complete the OAuth flow.

    Links the external identity to its user (registering one on first
    login) and returns an access token.
    """
    if data.scope is not None and data.scope not in SCOPES:
        raise HTTPException(status_code=400, detail=f"Unknown scope '{data.scope}'")

    client = None
    if data.client_id:
        client = await state.clients.get(data.client_id)
        if client is None:
            raise HTTPException(status_code=400, detail="Unknown client")

    try:
        info = await state.oauth.authenticate(provider, data.code, data.state)
    except OAuthError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = await state.users.find_or_create_from_identity(
        provider=info.provider,
        uid=info.uid,
        nickname=info.nickname,
        name=info.name,
        email=info.email,
    )
    return await state.tokens.issue(user, client=client, scope=data.scope)


# =============================================================================
# Protected Endpoints
# =============================================================================


@router.get("/me")
async def get_current_user(ctx: RequestContext = Depends(require_login)):
    return ctx.user.to_public()


@router.post("/logout")
async def logout(
    request: Request,
    ctx: RequestContext = Depends(require_login),
    state: AppState = Depends(get_state),
):
    token = bearer_token(request.headers.get("authorization"))
    await state.tokens.revoke(token or "")
    return {"message": "Logged out successfully"}
