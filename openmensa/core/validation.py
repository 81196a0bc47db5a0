"""
Validation rules applied before anything is persisted.

Validators collect every failing field instead of stopping at the first,
so a client sees all problems with its payload at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from openmensa.core.errors import FieldError, ValidationError
from openmensa.core.models import Meal, User
from openmensa.core.roles import RESERVED_LOGINS

if TYPE_CHECKING:
    from openmensa.storage.repositories import UserRepository


LOGIN_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")

# local-part@domain.tld; single label domains like "local" are rejected
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s.]+(\.[^@\s.]+)+$")


@dataclass
class ValidationResult:
    """Outcome of validating one record."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field_name, message))

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


# =============================================================================
# Users
# =============================================================================


def check_user(user: User) -> ValidationResult:
    """Rules that need nothing but the record itself."""
    result = ValidationResult()

    if _blank(user.login):
        result.add("login", "can't be blank")
    elif not LOGIN_PATTERN.match(user.login):
        result.add("login", "contains invalid characters")
    elif not user.is_internal and user.login.lower() in RESERVED_LOGINS:
        result.add("login", "is reserved")

    if _blank(user.name):
        result.add("name", "can't be blank")

    if user.email and not EMAIL_PATTERN.match(user.email):
        result.add("email", "is invalid")

    return result


async def validate_user(user: User, users: UserRepository) -> ValidationResult:
    """
    Validate a user before saving it.

    Includes the uniqueness check on `login`, which needs the repository.
    """
    result = check_user(user)
    if "login" not in result.fields:
        existing = await users.get_by_login(user.login)
        if existing is not None and existing.id != user.id:
            result.add("login", "has already been taken")
    return result


# =============================================================================
# Meals
# =============================================================================


def validate_meal(meal: Meal) -> ValidationResult:
    result = ValidationResult()
    for name in ("name", "date", "category", "cafeteria_id"):
        if _blank(getattr(meal, name)):
            result.add(name, "can't be blank")
    return result
