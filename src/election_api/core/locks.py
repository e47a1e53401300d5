"""Per-scope-key serialization for derived result writes.

Recomputes for different scope keys run fully in parallel; recomputes for
the same key must not interleave, otherwise a slower recompute could
overwrite a fresher one with stale counts.  Within one process this is an
``asyncio.Lock`` per key; across processes the materializer additionally
takes a PostgreSQL transaction-scoped advisory lock (see
``advisory_lock_id``).
"""

import asyncio
import hashlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ScopeLockRegistry:
    """Lazily-created asyncio locks keyed by ``position_id/scope_key``."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, position_id: str, scope_key: str) -> AsyncIterator[None]:
        """Hold the lock for one (position, scope key) pair."""
        lock = self._lock_for(lock_name(position_id, scope_key))
        async with lock:
            yield

    def is_locked(self, position_id: str, scope_key: str) -> bool:
        lock = self._locks.get(lock_name(position_id, scope_key))
        return lock is not None and lock.locked()


def lock_name(position_id: str, scope_key: str) -> str:
    return f"{position_id}/{scope_key}"


def advisory_lock_id(position_id: str, scope_key: str) -> int:
    """Stable signed 64-bit id for ``pg_advisory_xact_lock``."""
    digest = hashlib.blake2b(lock_name(position_id, scope_key).encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


# Singleton instance for the application
scope_locks = ScopeLockRegistry()
