"""Read-side result cache abstraction.

Provides a protocol for caching computed result payloads (live tallies,
winner lists, summaries) with an in-process TTL implementation.  The cache
is injected into read services; the result materializer invalidates the
affected position explicitly after every successful recompute, so entries
never outlive the ledger state they were built from except through a
failed recompute (which reconcile repairs).

Readers take ``generation()`` before querying and pass it back to ``set``:
a payload read before an invalidation of its key is dropped rather than
stored over the fresher state.
"""

import time
from typing import Any, Protocol

from loguru import logger


class ResultCache(Protocol):
    """Protocol for result payload caching."""

    def get(self, key: str) -> Any | None:
        """Return the cached value for ``key`` or None on miss/expiry."""
        ...

    def generation(self) -> int:
        """Current invalidation counter, taken by a reader before it queries."""
        ...

    def set(self, key: str, value: Any, generation: int | None = None) -> None:
        """Store ``value`` under ``key``.

        When ``generation`` is given and ``key`` was invalidated after it,
        the value is stale and is not stored.
        """
        ...

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed.
        """
        ...

    def clear(self) -> None:
        """Drop every entry."""
        ...


class InMemoryResultCache:
    """In-process TTL cache.

    Suitable for a single API process.  Keys are namespaced strings such as
    ``position:PRES:tally`` or ``global:winners``.
    """

    def __init__(self, ttl_seconds: float = 30.0) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: dict[str, tuple[float, Any]] = {}
        self._generation = 0
        self._invalidated_at: dict[str, int] = {}
        self._cleared_at = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def generation(self) -> int:
        return self._generation

    def _invalidated_since(self, key: str, generation: int) -> bool:
        if self._cleared_at > generation:
            return True
        return any(at > generation for prefix, at in self._invalidated_at.items() if key.startswith(prefix))

    def set(self, key: str, value: Any, generation: int | None = None) -> None:
        if generation is not None and self._invalidated_since(key, generation):
            logger.debug("Dropped stale result for '{}'", key)
            return
        self._entries[key] = (time.monotonic() + self.ttl_seconds, value)

    def invalidate_prefix(self, prefix: str) -> int:
        self._generation += 1
        self._invalidated_at[prefix] = self._generation
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Invalidated {} cached result(s) under '{}'", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._generation += 1
        self._cleared_at = self._generation
        self._invalidated_at.clear()
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class NullResultCache:
    """Cache that never stores anything (CLI runs, tests)."""

    def get(self, key: str) -> Any | None:
        return None

    def generation(self) -> int:
        return 0

    def set(self, key: str, value: Any, generation: int | None = None) -> None:
        return None

    def invalidate_prefix(self, prefix: str) -> int:
        return 0

    def clear(self) -> None:
        return None


def position_prefix(position_id: str) -> str:
    """Cache key prefix for everything derived from one position."""
    return f"position:{position_id}:"


# Winner lists and summaries span positions; they live under this prefix.
GLOBAL_PREFIX = "global:"

_result_cache: InMemoryResultCache | None = None


def get_result_cache() -> ResultCache:
    """Return the process-wide cache instance, creating it on first use."""
    global _result_cache  # noqa: PLW0603
    if _result_cache is None:
        from election_api.core.config import get_settings

        _result_cache = InMemoryResultCache(ttl_seconds=get_settings().result_cache_ttl_seconds)
    return _result_cache
