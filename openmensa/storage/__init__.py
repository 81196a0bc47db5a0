"""
Storage abstractions and the in-memory development backends.
"""

from openmensa.storage.base import (
    CacheStorage,
    Collections,
    DuplicateKeyError,
    MetadataStorage,
    StorageProvider,
)
from openmensa.storage.local import create_local_storage
from openmensa.storage.repositories import (
    AccessTokenRepository,
    ClientRepository,
    MealRepository,
    UserRepository,
)

__all__ = [
    "CacheStorage",
    "Collections",
    "DuplicateKeyError",
    "MetadataStorage",
    "StorageProvider",
    "create_local_storage",
    "AccessTokenRepository",
    "ClientRepository",
    "MealRepository",
    "UserRepository",
]
