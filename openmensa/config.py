"""
Application configuration.

Loads settings from environment variables (and `.env`) with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_version: str = "1"
    base_url: str = "http://localhost:8000"
    cors_origins: str = "http://localhost:3000"

    # ==========================================================================
    # Localization
    # ==========================================================================

    default_locale: str = "de"
    available_locales: str = "de,en"
    default_time_zone: str = "Berlin"

    # ==========================================================================
    # Access tokens
    # ==========================================================================

    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24

    # ==========================================================================
    # OAuth providers
    # ==========================================================================

    # Provider keys normally come from config/omniauth.yml, the variables
    # below override them per deployment.
    omniauth_config_path: str = "config/omniauth.yml"
    github_oauth_key: str = ""
    github_oauth_secret: str = ""
    twitter_oauth_key: str = ""
    twitter_oauth_secret: str = ""

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def available_locales_list(self) -> list[str]:
        return [l.strip() for l in self.available_locales.split(",") if l.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
