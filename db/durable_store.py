"""Durable key/value backends underneath the cache layer.

Every backend stores UTF-8 text under string keys and exposes the same five
coroutines: ``get``, ``set``, ``remove``, ``clear`` and ``list_keys``.
Serialization is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_KV_TABLE = "kv_store"


class DurableStoreError(RuntimeError):
    """Raised when a backend cannot complete an I/O operation."""


class DurableStore(Protocol):
    """Asynchronous, crash-persistent key -> text mapping."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def list_keys(self) -> List[str]: ...


class MemoryDurableStore:
    """
    Process-local store used when no database is configured.

    Data does not survive a restart; it exists so the data layer runs
    without external services (local development and tests).
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Durable values must be text, got {type(value).__name__}")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def list_keys(self) -> List[str]:
        return list(self._data)


class SupabaseDurableStore:
    """
    Key/value rows in a Supabase table with ``key`` and ``value`` text columns.

    The Supabase client is synchronous, so every call runs in a worker thread.
    Client exceptions are logged and re-raised as DurableStoreError.
    """

    def __init__(self, client: Any, table: str = DEFAULT_KV_TABLE) -> None:
        if client is None:
            raise ValueError("A Supabase client is required for SupabaseDurableStore")
        self._client = client
        self._table = table

    async def _run(self, action: str, key: Optional[str], fn):
        try:
            return await asyncio.to_thread(fn)
        except Exception as exc:
            logger.exception("Supabase %s failed for key %s", action, key)
            raise DurableStoreError(f"Supabase {action} failed for key {key!r}") from exc

    async def get(self, key: str) -> Optional[str]:
        result = await self._run(
            "get",
            key,
            lambda: self._client.table(self._table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute(),
        )
        rows = result.data or []
        if not rows:
            return None
        return rows[0].get("value")

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Durable values must be text, got {type(value).__name__}")
        await self._run(
            "set",
            key,
            lambda: self._client.table(self._table)
            .upsert({"key": key, "value": value})
            .execute(),
        )

    async def remove(self, key: str) -> None:
        await self._run(
            "remove",
            key,
            lambda: self._client.table(self._table).delete().eq("key", key).execute(),
        )

    async def clear(self) -> None:
        # PostgREST refuses an unfiltered delete.
        await self._run(
            "clear",
            None,
            lambda: self._client.table(self._table).delete().neq("key", "").execute(),
        )

    async def list_keys(self) -> List[str]:
        result = await self._run(
            "list_keys",
            None,
            lambda: self._client.table(self._table).select("key").execute(),
        )
        return [row["key"] for row in result.data or []]
