"""
FastAPI application for OpenMensa.

Use `create_app()` to build an app (tests build one per test); the module
level `app` is what the server runs.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from openmensa.api.errors import register_error_handlers
from openmensa.api.state import AppState
from openmensa.api.v1 import router as api_router
from openmensa.auth.policies import RequestContextMiddleware
from openmensa.auth.routes import router as auth_router
from openmensa.config import get_settings
from openmensa.integrations.oauth import OAuthManager
from openmensa.integrations.sentry import init_sentry
from openmensa.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if init_sentry():
        logger.info("Sentry error tracking enabled")
    logger.info(f"OpenMensa API starting in {settings.environment} mode")
    yield
    logger.info("OpenMensa API shutting down")


def create_app(
    storage: StorageProvider | None = None,
    oauth: OAuthManager | None = None,
) -> FastAPI:
    """Build the application with its own storage and services."""
    settings = get_settings()
    state = AppState.build(storage or create_local_storage(), oauth=oauth)

    app = FastAPI(
        title="OpenMensa API",
        description="Cafeterias, meals and the people maintaining them",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.openmensa = state

    app.add_middleware(RequestContextMiddleware, token_store=state.tokens)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "api_version": settings.api_version}

    return app


app = create_app()
