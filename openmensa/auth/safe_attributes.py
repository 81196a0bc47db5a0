"""
Mass-assignment protection.

Which attributes may be set straight from an untrusted payload depends on
who is acting and whether a record is being created or updated:

    create  anybody          login, email, name, time_zone, language
    create  admin / system   ... plus admin
    update  the user itself  email, name, time_zone, language
    update  admin / system   login, email, name, time_zone, language, admin
    update  anybody else     nothing
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from openmensa.core.errors import AccessDenied
from openmensa.core.models import User
from openmensa.core.roles import is_admin

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class Relation(str, Enum):
    """How the actor relates to the record being written."""

    PRIVILEGED = "privileged"  # admin or system
    SELF = "self"              # the record is the actor's own
    OTHER = "other"            # anybody else, including anonymous


PROFILE_FIELDS = frozenset({"email", "name", "time_zone", "language"})
REGISTRATION_FIELDS = PROFILE_FIELDS | {"login"}
ADMIN_FIELDS = REGISTRATION_FIELDS | {"admin"}

SAFE_ATTRIBUTES: dict[tuple[Operation, Relation], frozenset[str]] = {
    (Operation.CREATE, Relation.PRIVILEGED): ADMIN_FIELDS,
    (Operation.CREATE, Relation.SELF): REGISTRATION_FIELDS,
    (Operation.CREATE, Relation.OTHER): REGISTRATION_FIELDS,
    (Operation.UPDATE, Relation.PRIVILEGED): ADMIN_FIELDS,
    (Operation.UPDATE, Relation.SELF): PROFILE_FIELDS,
    (Operation.UPDATE, Relation.OTHER): frozenset(),
}


def relation(actor: User, target: User) -> Relation:
    if is_admin(actor.role):
        return Relation.PRIVILEGED
    if actor.is_logged and actor.id == target.id:
        return Relation.SELF
    return Relation.OTHER


def safe_attributes(actor: User, target: User, operation: Operation | str) -> frozenset[str]:
    """Attributes `actor` may mass-assign on `target` for this operation."""
    return SAFE_ATTRIBUTES[(Operation(operation), relation(actor, target))]


def sanitize_attributes(
    actor: User,
    target: User,
    operation: Operation | str,
    attributes: dict[str, Any],
) -> dict[str, Any]:
    """
    Filter an untrusted payload down to the safe attributes.

    Keys outside the allow-list are dropped. If nothing at all may be
    assigned, a non-empty payload is rejected as a whole.

    Raises:
        AccessDenied: nothing is assignable but attributes were given
    """
    allowed = safe_attributes(actor, target, operation)
    if attributes and not allowed:
        raise AccessDenied(
            f"'{actor.login}' may not assign attributes of user '{target.login}'."
        )

    dropped = sorted(set(attributes) - allowed)
    if dropped:
        logger.warning(f"Dropped protected attributes {dropped} for '{actor.login}'")

    return {key: value for key, value in attributes.items() if key in allowed}
