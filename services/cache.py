"""In-memory read cache in front of the durable key/value store."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from db.durable_store import DurableStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CacheEntry:
    """A decoded value with the time it was stored and an optional expiry."""

    data: Any
    stored_at: datetime
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass(frozen=True, slots=True)
class StorageInfo:
    """Snapshot of cache occupancy and durable key count."""

    cache_size: int
    total_keys: int
    last_access: Dict[str, str]


class CacheLayer:
    """
    Read accelerator over a DurableStore.

    Writes always go to the durable store first; the cache only remembers
    the decoded value. Write failures propagate to the caller, read failures
    are logged and answered with the caller's default.
    """

    def __init__(self, store: DurableStore, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    @property
    def store(self) -> DurableStore:
        return self._store

    def __len__(self) -> int:
        return len(self._entries)

    async def set(self, key: str, value: Any, ttl_minutes: Optional[float] = None) -> None:
        """Persist ``value`` as JSON and cache it, optionally expiring after ``ttl_minutes``."""
        try:
            serialized = json.dumps(value, ensure_ascii=False)
            await self._store.set(key, serialized)
        except Exception:
            logger.exception("Failed to save %s", key)
            raise

        now = self._clock()
        expires_at = now + timedelta(minutes=ttl_minutes) if ttl_minutes else None
        # Cache the decoded form so memory and durable reads agree.
        self._entries[key] = CacheEntry(
            data=json.loads(serialized),
            stored_at=now,
            expires_at=expires_at,
        )

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the cached or stored value for ``key``, else ``default``."""
        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(self._clock()):
                return copy.deepcopy(entry.data)
            logger.debug("Cache entry for %s expired; evicting.", key)
            self._entries.pop(key, None)

        try:
            stored = await self._store.get(key)
            if stored is None:
                return default
            parsed = json.loads(stored)
        except Exception:
            logger.exception("Failed to load %s; returning default.", key)
            return default

        # Reads never set an expiry; only explicit writes do.
        self._entries[key] = CacheEntry(data=parsed, stored_at=self._clock())
        return copy.deepcopy(parsed)

    async def remove(self, key: str) -> None:
        try:
            await self._store.remove(key)
        except Exception:
            logger.exception("Failed to remove %s", key)
            raise
        self._entries.pop(key, None)

    async def clear_all(self) -> None:
        """Wipe the durable store and the cache. Irreversible."""
        try:
            await self._store.clear()
        except Exception:
            logger.exception("Failed to clear storage")
            raise
        self._entries.clear()
        logger.warning("All stored data was cleared.")

    def clear_cache(self) -> None:
        """Drop cached entries only; the next reads go back to the durable store."""
        self._entries.clear()

    async def storage_info(self) -> StorageInfo:
        try:
            total_keys = len(await self._store.list_keys())
        except Exception:
            logger.exception("Failed to list durable keys")
            total_keys = 0

        return StorageInfo(
            cache_size=len(self._entries),
            total_keys=total_keys,
            last_access={
                key: entry.stored_at.isoformat() for key, entry in self._entries.items()
            },
        )
