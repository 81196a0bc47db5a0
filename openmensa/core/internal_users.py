"""
The System and Anonymous users.

Both are process-wide singletons: created on first access, cached after
that, never persisted with the end users and never destroyed. Creation
runs under a lock so concurrent first access still yields one instance.
"""

from __future__ import annotations

import logging
import threading

from openmensa.core.models import User
from openmensa.core.roles import Role

logger = logging.getLogger(__name__)

SYSTEM_ID = "user_system"
ANONYMOUS_ID = "user_anonymous"

_lock = threading.Lock()
_instances: dict[Role, User] = {}


def _build(role: Role) -> User:
    if role is Role.SYSTEM:
        return User(id=SYSTEM_ID, login=Role.SYSTEM.value, name="System", role=Role.SYSTEM)
    return User(id=ANONYMOUS_ID, login=Role.ANONYMOUS.value, name="Anonymous", role=Role.ANONYMOUS)


def _get(role: Role) -> User:
    user = _instances.get(role)
    if user is not None:
        return user
    with _lock:
        user = _instances.get(role)
        if user is None:
            user = _build(role)
            _instances[role] = user
            logger.debug(f"Created internal {role.value} user")
        return user


def system_user() -> User:
    """The user background work runs as. Always admin, never logged in."""
    return _get(Role.SYSTEM)


def anonymous_user() -> User:
    """The user for requests without a (valid) access token."""
    return _get(Role.ANONYMOUS)


def reset_internal_users() -> None:
    """Forget the cached instances (useful for testing)."""
    with _lock:
        _instances.clear()
