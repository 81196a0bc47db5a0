"""
OAuth provider configuration loader.

Provider credentials live in `config/omniauth.yml`, one section per
environment:

    development:
      github:
        key: abc
        secret: def
      twitter:
        key: ghi
        secret: jkl

A provider is enabled only if its section is present. Environment variables
(GITHUB_OAUTH_KEY etc.) take precedence over the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from openmensa.config import Settings, get_settings

logger = logging.getLogger(__name__)

PROVIDERS = ("github", "twitter")


class ProviderCredentials(BaseModel):
    """Key and secret of one OAuth application."""

    key: str
    secret: str


class ConfigError(Exception):
    """Raised when a configuration file is malformed."""
    pass


def load_omniauth_config(
    path: Path | str,
    environment: str,
) -> dict[str, ProviderCredentials]:
    """
    Load the provider credentials for one environment.

    Returns an empty dict if the file or the environment section is missing.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No OAuth configuration at {path}")
        return {}

    with open(path, encoding="utf-8") as f:
        data: Any = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping of environments")

    section = data.get(environment) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: section '{environment}' must be a mapping")

    providers: dict[str, ProviderCredentials] = {}
    for name in PROVIDERS:
        entry = section.get(name)
        if not entry:
            continue
        try:
            providers[name] = ProviderCredentials(key=str(entry["key"]), secret=str(entry["secret"]))
        except (KeyError, TypeError):
            raise ConfigError(f"{path}: provider '{name}' needs 'key' and 'secret'")

    logger.info(f"Loaded OAuth providers for {environment}: {sorted(providers)}")
    return providers


def provider_credentials(settings: Settings | None = None) -> dict[str, ProviderCredentials]:
    """Credentials from the config file, overridden by the environment."""
    settings = settings or get_settings()
    providers = load_omniauth_config(settings.omniauth_config_path, settings.environment)

    for name in PROVIDERS:
        key = getattr(settings, f"{name}_oauth_key")
        secret = getattr(settings, f"{name}_oauth_secret")
        if key and secret:
            providers[name] = ProviderCredentials(key=key, secret=secret)

    return providers
