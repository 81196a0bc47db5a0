"""
Domain errors.

Every error here is a deterministic outcome of the current request's input.
They are caught at the HTTP boundary (see openmensa.api.errors) and rendered
as plain key/value data in whatever format the client asked for.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class OpenMensaError(Exception):
    """Base class for errors translated into an HTTP response."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.error.replace("_", " ").capitalize() + "."

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class AccessDenied(OpenMensaError):
    """An ability rule refused the action."""

    status_code = 403
    error = "access_denied"

    def __init__(
        self,
        message: str | None = None,
        action: str | None = None,
        subject: str | None = None,
    ):
        self.action = action
        self.subject = subject
        super().__init__(message)

    def default_message(self) -> str:
        if self.action and self.subject:
            return f"You are not authorized to {self.action} {self.subject}."
        return "You are not authorized to access this resource."


class NotFound(OpenMensaError):
    """Referenced entity does not exist."""

    status_code = 404
    error = "not_found"

    def __init__(self, kind: str, id: str):
        self.kind = kind
        self.id = id
        super().__init__(f"{kind} '{id}' not found.")


@dataclass(frozen=True)
class FieldError:
    """A single failed validation rule."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(OpenMensaError):
    """One or more field rules failed. Nothing was persisted."""

    status_code = 422
    error = "unprocessable_entity"

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        fields = ", ".join(sorted(self.fields))
        super().__init__(f"Validation failed: {fields}")

    @property
    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["fields"] = [e.to_dict() for e in self.errors]
        return data


class UnsupportedFormat(OpenMensaError):
    """Content negotiation failed."""

    status_code = 406
    error = "not_acceptable"

    def __init__(self, format: str | None = None):
        self.format = format
        super().__init__("Unsupported format.")
