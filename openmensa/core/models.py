"""
Core data models.

Users come in four roles (see openmensa.core.roles) but share one record
shape. Meals belong to a cafeteria and are the main public resource.
"""

from __future__ import annotations

from datetime import date as Date
from datetime import datetime
from typing import Any

import pydantic
from pydantic import BaseModel, Field, StrictBool, TypeAdapter, computed_field, field_validator

from openmensa.core import roles
from openmensa.core.errors import FieldError, ValidationError
from openmensa.core.roles import Role
from openmensa.core.utils import generate_id, utc_now


def _default_time_zone() -> str:
    from openmensa.config import get_settings
    return get_settings().default_time_zone


def _default_language() -> str:
    from openmensa.i18n import get_locale
    return get_locale()


_ADMIN_FLAG = TypeAdapter(StrictBool)


# =============================================================================
# Users
# =============================================================================


class Identity(BaseModel):
    """An external login (GitHub, Twitter) linked to a user."""

    id: str = Field(default_factory=lambda: generate_id("ident"))
    provider: str
    uid: str
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)


class User(BaseModel):
    """
    A user account.

    The `admin` flag is not stored separately: it is derived from `role`
    and changing it moves a user between REGULAR and ADMIN.
    """

    id: str = Field(default_factory=lambda: generate_id("user"))

    login: str = ""
    email: str | None = None
    name: str = ""
    time_zone: str = Field(default_factory=_default_time_zone)
    language: str = Field(default_factory=_default_language)

    role: Role = Role.REGULAR

    identities: list[Identity] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def admin(self) -> bool:
        return roles.is_admin(self.role)

    @property
    def is_logged(self) -> bool:
        return roles.is_logged(self.role)

    @property
    def is_admin(self) -> bool:
        return roles.is_admin(self.role)

    @property
    def is_internal(self) -> bool:
        return roles.is_internal(self.role)

    @property
    def is_destructible(self) -> bool:
        return roles.is_destructible(self.role)

    def set_admin(self, admin: bool) -> None:
        self.role = roles.with_admin_flag(self.role, admin)

    def assign(self, attributes: dict[str, Any]) -> None:
        """
        Set attributes with the same type checks as construction.

        Callers filter untrusted input first. `admin` only takes real
        booleans.

        Raises:
            ValidationError: naming every field with an unusable value; the
                user is left unchanged
        """
        changes = {k: v for k, v in attributes.items() if k in User.model_fields}
        errors: list[FieldError] = []

        admin = None
        if "admin" in attributes:
            try:
                admin = _ADMIN_FLAG.validate_python(attributes["admin"])
            except pydantic.ValidationError:
                errors.append(FieldError("admin", "must be true or false"))

        checked = None
        try:
            checked = User.model_validate({**self.model_dump(exclude={"admin"}), **changes})
        except pydantic.ValidationError as e:
            errors.extend(
                FieldError(str(err["loc"][0]) if err["loc"] else "base", err["msg"])
                for err in e.errors()
            )

        if errors:
            raise ValidationError(errors)

        for key in changes:
            setattr(self, key, getattr(checked, key))
        if admin is not None:
            self.set_admin(admin)
        self.updated_at = utc_now()

    def to_public(self) -> dict[str, Any]:
        """Plain key/value representation for API responses."""
        return {
            "id": self.id,
            "login": self.login,
            "email": self.email,
            "name": self.name,
            "time_zone": self.time_zone,
            "language": self.language,
            "admin": self.admin,
            "role": self.role.value,
        }


# =============================================================================
# API clients and access tokens
# =============================================================================


class Client(BaseModel):
    """An application talking to the API on behalf of users."""

    id: str = Field(default_factory=lambda: generate_id("client"))
    name: str
    created_at: datetime = Field(default_factory=utc_now)


class AbilityScope(BaseModel):
    """
    A restriction attached to an access token.

    Only the listed actions are possible through the token, whatever the
    owning user could do otherwise.
    """

    name: str
    actions: frozenset[str]

    def permits(self, action: str) -> bool:
        return action in self.actions


class AccessToken(BaseModel):
    """Record of an issued access token, used for lookup and revocation."""

    id: str = Field(default_factory=lambda: generate_id("tok"))
    user_id: str
    client_id: str | None = None
    scope: str | None = None
    expires_at: datetime
    revoked: bool = False
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Meals
# =============================================================================


class Meal(BaseModel):
    """A meal served by a cafeteria on a given day."""

    id: str = Field(default_factory=lambda: generate_id("meal"))
    cafeteria_id: str | None = None
    date: Date | None = None
    name: str | None = None
    category: str | None = None
    description: str | None = None
    prices: dict[str, float] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("date", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_public(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cafeteria_id": self.cafeteria_id,
            "date": self.date.isoformat() if self.date else None,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "prices": dict(self.prices),
        }
