"""
User roles and the predicates derived from them.

A user's role is a single tag on the record. Everything role dependent
(logged in, admin, internal, destructible) is a pure function of that tag.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """What kind of account a user record is."""

    REGULAR = "regular"        # Normal end user
    ADMIN = "admin"            # End user with the admin flag set
    SYSTEM = "system"          # Internal: background work, always admin
    ANONYMOUS = "anonymous"    # Internal: whoever is not logged in


INTERNAL_ROLES = frozenset({Role.SYSTEM, Role.ANONYMOUS})
ADMIN_ROLES = frozenset({Role.ADMIN, Role.SYSTEM})

# Logins taken by the internal users, never available to end users
RESERVED_LOGINS = frozenset({Role.ANONYMOUS.value, Role.SYSTEM.value})


def is_logged(role: Role) -> bool:
    return role not in INTERNAL_ROLES


def is_admin(role: Role) -> bool:
    return role in ADMIN_ROLES


def is_internal(role: Role) -> bool:
    return role in INTERNAL_ROLES


def is_destructible(role: Role) -> bool:
    """Only plain end users can ever be destroyed."""
    return role is Role.REGULAR


def with_admin_flag(role: Role, admin: bool) -> Role:
    """
    Role after setting the admin flag.

    Internal roles ignore the flag.
    """
    if role in INTERNAL_ROLES:
        return role
    return Role.ADMIN if admin else Role.REGULAR
