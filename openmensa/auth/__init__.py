"""
Identity and authorization.

- abilities: who may do what (`can`, `require`)
- safe_attributes: which fields an actor may mass-assign
- context: the per-request RequestContext and current user/client
- tokens: access tokens and their resolution
- policies: FastAPI glue resolving the context per request
"""

from openmensa.auth.abilities import Action, can, cannot, require
from openmensa.auth.context import (
    RequestContext,
    current_client,
    current_user,
    request_scope,
    resolve_context,
    set_current_user,
)
from openmensa.auth.safe_attributes import (
    Operation,
    safe_attributes,
    sanitize_attributes,
)
from openmensa.auth.tokens import Resolution, TokenResponse, TokenStore

__all__ = [
    # Abilities
    "Action",
    "can",
    "cannot",
    "require",
    # Context
    "RequestContext",
    "current_client",
    "current_user",
    "request_scope",
    "resolve_context",
    "set_current_user",
    # Mass assignment
    "Operation",
    "safe_attributes",
    "sanitize_attributes",
    # Tokens
    "Resolution",
    "TokenResponse",
    "TokenStore",
]
