"""Durable store selection: Supabase when configured, in-memory otherwise."""

from __future__ import annotations

import logging
import os
from typing import Optional

from db.durable_store import (
    DEFAULT_KV_TABLE,
    DurableStore,
    MemoryDurableStore,
    SupabaseDurableStore,
)

logger = logging.getLogger(__name__)

_supabase_client = None


def get_supabase():
    """Return the Supabase client, or None if not configured."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    if not url or not key:
        logger.warning("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set; using in-memory storage.")
        return None

    try:
        from supabase import create_client
        _supabase_client = create_client(url, key)
        logger.info("Supabase client initialized.")
        return _supabase_client
    except Exception:
        logger.exception("Failed to initialize Supabase client; falling back to in-memory.")
        return None


def get_durable_store(table: Optional[str] = None) -> DurableStore:
    """Build the durable store backing the cache layer."""
    client = get_supabase()
    if client is None:
        logger.info("Durable store: in-memory (data is lost on restart).")
        return MemoryDurableStore()

    table_name = table or os.getenv("SUPABASE_KV_TABLE", DEFAULT_KV_TABLE)
    logger.info("Durable store: Supabase table %s.", table_name)
    return SupabaseDurableStore(client, table=table_name)
