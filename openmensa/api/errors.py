"""
Translation of domain errors into responses.

Errors are rendered in the format the client asked for when that format is
supported, otherwise as JSON.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError

from openmensa.api.formats import DEFAULT_FORMAT, MEDIA_TYPES, render
from openmensa.auth.policies import get_request_context
from openmensa.config import get_settings
from openmensa.core.errors import AccessDenied, FieldError, OpenMensaError, ValidationError

logger = logging.getLogger(__name__)


def _format_of(request: Request) -> str:
    fmt = request.path_params.get("fmt")
    return fmt if fmt in MEDIA_TYPES else DEFAULT_FORMAT


async def handle_domain_error(request: Request, exc: OpenMensaError) -> Response:
    status_code = exc.status_code
    if isinstance(exc, AccessDenied) and get_request_context(request).is_anonymous:
        # Nobody logged in: ask for credentials instead of forbidding
        status_code = 401

    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.error}")
    headers = None
    if request.url.path.startswith("/api/"):
        headers = {"api_version": get_settings().api_version}
    return render(exc.to_dict(), _format_of(request), status_code=status_code, root="error", headers=headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> Response:
    """Malformed bodies and parameters, answered like any other 422."""
    errors = [
        FieldError(str(err["loc"][-1]) if err.get("loc") else "base", err["msg"])
        for err in exc.errors()
    ]
    return await handle_domain_error(request, ValidationError(errors))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OpenMensaError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
