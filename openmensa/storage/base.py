"""
Storage abstraction layer.

All persistence goes through these interfaces so the in-memory development
backends can be swapped for a real database without touching services.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class DuplicateKeyError(Exception):
    """A unique constraint on a collection was violated."""

    def __init__(self, collection: str, key: str, value: Any):
        self.collection = collection
        self.key = key
        self.value = value
        super().__init__(f"Duplicate {key}={value!r} in {collection}")


# =============================================================================
# Storage Interfaces
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured records (users, identities, meals, tokens).

    Local Implementation: in-memory
    """

    @abstractmethod
    async def save(
        self,
        collection: str,
        id: str,
        data: dict[str, Any],
        unique: tuple[str, ...] = (),
    ) -> None:
        """
        Save a document to a collection.

        Raises DuplicateKeyError if another document already holds the same
        value for one of the `unique` keys.
        """
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional equality filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """Partial update of a document."""
        pass


class CacheStorage(ABC):
    """Short-lived key-value data such as pending OAuth states."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value with optional TTL in seconds."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    async def pop(self, key: str) -> Any | None:
        """Get and delete a value in one go."""
        value = await self.get(key)
        if value is not None:
            await self.delete(key)
        return value


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialized once at app startup and handed to the repositories.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage
    cache: CacheStorage


class Collections:
    """Standard collection/table names."""

    USERS = "users"
    IDENTITIES = "identities"
    CLIENTS = "clients"
    ACCESS_TOKENS = "access_tokens"
    MEALS = "meals"
