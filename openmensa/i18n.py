"""
Active locale handling.

The active locale is request-scoped. New users default their `language`
to whatever locale is active when they are built.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


_active_locale: ContextVar[str | None] = ContextVar("active_locale", default=None)


def default_locale() -> str:
    from openmensa.config import get_settings
    return get_settings().default_locale


def get_locale() -> str:
    """The locale active for the current request, else the configured default."""
    return _active_locale.get() or default_locale()


def is_available(locale: str) -> bool:
    from openmensa.config import get_settings
    return locale in get_settings().available_locales_list


@contextmanager
def use_locale(locale: str | None) -> Iterator[str]:
    """
    Activate a locale for the enclosed block.

    Unknown locales fall back to the default.
    """
    if not locale or not is_available(locale):
        locale = default_locale()
    token = _active_locale.set(locale)
    try:
        yield locale
    finally:
        _active_locale.reset(token)


def negotiate_locale(accept_language: str | None) -> str | None:
    """Pick the first available locale from an Accept-Language header."""
    if not accept_language:
        return None
    for part in accept_language.split(","):
        tag = part.split(";")[0].strip().lower()
        if not tag:
            continue
        primary = tag.split("-")[0]
        if is_available(primary):
            return primary
    return None
