"""
Shared helpers for ids, tokens and timestamps.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Returns:
        An ID like "user_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def generate_token(nbytes: int = 32) -> str:
    """URL-safe random string for opaque tokens and OAuth state."""
    return secrets.token_urlsafe(nbytes)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
