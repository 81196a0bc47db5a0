"""
Abilities - who may do what to which resource.

This module only answers questions. Raising on a denied action happens in
`require()`; translating that into an HTTP response happens in the API.

Targets are either a model class (collection level: index/new/create) or a
model instance. Rules are evaluated by the actor's role:

    anonymous      nothing at all, not even on itself
    regular        show itself, nothing else
    admin/system   everything on users, except destroying admins or
                   internal users (nobody may lock out the administrators)

Meals can be read by any logged in user (or API client acting for one);
only admins maintain them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from openmensa.core.errors import AccessDenied
from openmensa.core.models import AbilityScope, Meal, User
from openmensa.core.roles import Role, is_admin

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Controller style actions a target can be subject to."""

    INDEX = "index"
    NEW = "new"
    CREATE = "create"
    SHOW = "show"
    EDIT = "edit"
    UPDATE = "update"
    DELETE = "delete"
    DESTROY = "destroy"


COLLECTION_ACTIONS = frozenset({Action.INDEX, Action.NEW, Action.CREATE})
READ_ACTIONS = frozenset({Action.INDEX, Action.SHOW})
WRITE_ACTIONS = frozenset({Action.EDIT, Action.UPDATE})
DESTROY_ACTIONS = frozenset({Action.DELETE, Action.DESTROY})


# =============================================================================
# Token scopes
# =============================================================================


SCOPES: dict[str, AbilityScope] = {
    "read": AbilityScope(name="read", actions=frozenset(a.value for a in READ_ACTIONS)),
    "write": AbilityScope(
        name="write",
        actions=frozenset(a.value for a in READ_ACTIONS | COLLECTION_ACTIONS | WRITE_ACTIONS),
    ),
}


def get_scope(name: str | None) -> AbilityScope | None:
    """Look up a named scope. Unknown names yield an empty scope."""
    if name is None:
        return None
    return SCOPES.get(name, AbilityScope(name=name, actions=frozenset()))


# =============================================================================
# Rules
# =============================================================================


def _parse_action(action: Action | str) -> Action | None:
    if isinstance(action, Action):
        return action
    try:
        return Action(action)
    except ValueError:
        return None


def _can_on_users(actor: User, action: Action, target: type | User) -> bool:
    if isinstance(target, type):
        return is_admin(actor.role)

    if actor.role is Role.REGULAR:
        return action is Action.SHOW and target.id == actor.id

    # admin or system
    if action in DESTROY_ACTIONS:
        return target.is_destructible and target.id != actor.id
    return True


def _can_on_meals(actor: User, action: Action, target: type | Meal) -> bool:
    if action in READ_ACTIONS:
        return True
    return is_admin(actor.role)


def can(
    actor: User,
    action: Action | str,
    target: Any,
    scope: AbilityScope | None = None,
) -> bool:
    """
    Check whether `actor` may perform `action` on `target`.

    Args:
        actor: The user acting (anonymous if nobody is logged in)
        action: One of Action, or its string value
        target: A model class for collection level actions, or an instance
        scope: Optional token scope further restricting the actor

    Returns:
        True if allowed. Unknown actions and targets are always denied.
    """
    parsed = _parse_action(action)
    if parsed is None:
        return False

    if scope is not None and not scope.permits(parsed.value):
        return False

    if actor.role is Role.ANONYMOUS:
        return False

    if target is User or isinstance(target, User):
        return _can_on_users(actor, parsed, target)
    if target is Meal or isinstance(target, Meal):
        return _can_on_meals(actor, parsed, target)
    return False


def cannot(actor: User, action: Action | str, target: Any, scope: AbilityScope | None = None) -> bool:
    return not can(actor, action, target, scope)


def describe(target: Any) -> str:
    """Human readable name of a target, for error messages."""
    if isinstance(target, type):
        return f"{target.__name__.lower()}s"
    if isinstance(target, User):
        return f"user '{target.login}'"
    if isinstance(target, Meal):
        return f"meal '{target.id}'"
    return type(target).__name__.lower()


def require(
    actor: User,
    action: Action | str,
    target: Any,
    scope: AbilityScope | None = None,
) -> None:
    """
    Raise AccessDenied if `actor` may not perform `action` on `target`.

    Usage:
        require(ctx.user, "update", user)  # raises if not allowed
    """
    if can(actor, action, target, scope):
        return
    value = action.value if isinstance(action, Action) else str(action)
    logger.warning(f"Denied {value} on {describe(target)} for '{actor.login}' ({actor.role.value})")
    raise AccessDenied(action=value, subject=describe(target))
