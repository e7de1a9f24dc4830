"""Quick diagnostic script to show which storage settings are configured."""

from __future__ import annotations

import os

from dotenv import load_dotenv

from db.durable_store import DEFAULT_KV_TABLE

STORAGE_KEYS = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_KV_TABLE",
]

OPTIONAL_KEYS = [
    "LOG_LEVEL",
    "STRICT_VALIDATION",
    "CORS_ALLOW_ORIGINS",
]


def selected_backend() -> str:
    if os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_SERVICE_ROLE_KEY"):
        return f"supabase ({os.getenv('SUPABASE_KV_TABLE', DEFAULT_KV_TABLE)})"
    return "in-memory"


def main() -> None:
    load_dotenv()
    for key in STORAGE_KEYS + OPTIONAL_KEYS:
        value = os.getenv(key)
        status = "SET" if value else "MISSING"
        print(f"{key}: {status}")
    print(f"Durable store: {selected_backend()}")


if __name__ == "__main__":
    main()
