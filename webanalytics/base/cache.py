# ==============================================================================
# Cache Abstract Base Class
# ==============================================================================
"""
Abstract interface for key-value caching with TTL support.

This is NOT a store (which represents domain object collections).
The run-status tracker keeps scheduler run reports here.

Implementations: Valkey, Redis, etc.
"""

from abc import ABC, abstractmethod


class Cache(ABC):
    """
    Generic cache interface for key-value storage with TTL support.

    Values are JSON-serializable dicts. Implementations handle
    serialization/deserialization internally.
    """

    @abstractmethod
    def get(self, key: str) -> dict | None:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            Cached value as dict, or None if not found
        """
        ...

    @abstractmethod
    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        """
        Set a cached value with optional TTL.

        Args:
            key: Cache key
            value: Value to cache (must be JSON-serializable dict)
            ttl_seconds: Optional time-to-live in seconds
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if key was deleted, False if not found
        """
        ...

    @abstractmethod
    def push_recent(self, key: str, value: dict, max_items: int, ttl_seconds: int | None = None) -> None:
        """
        Prepend a value to a capped list.

        Args:
            key: List key
            value: Value to prepend (JSON-serializable dict)
            max_items: Entries kept after the push, newest first
            ttl_seconds: Optional time-to-live for the whole list
        """
        ...

    @abstractmethod
    def recent(self, key: str, count: int) -> list[dict]:
        """
        Newest entries of a capped list.

        Returns:
            Up to count values, newest first
        """
        ...
