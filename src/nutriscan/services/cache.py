"""TTL cache for provider lookups."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""

    def invalidate(self, key: str) -> None:
        """Drop a cached value."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryCache(Cache):
    """Process-local cache; entries expire lazily on read."""

    clock: Callable[[], datetime] = _utcnow
    _entries: dict[str, _CacheEntry] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        expires_at = self.clock() + timedelta(seconds=ttl_seconds)
        self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, key: str) -> None:
        """Remove a key whether or not it has expired."""
        self._entries.pop(key, None)
