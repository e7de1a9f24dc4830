"""Snapshot and restore of the whole data set as one JSON document."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from services.storage import RecordStore, StorageKeys

logger = logging.getLogger(__name__)


class BackupFormatError(ValueError):
    """Raised when a backup blob cannot be parsed; nothing is restored."""


def _iso_timestamp() -> str:
    # e.g. 2024-05-01T12:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BackupService:
    """Creates and restores backups of appointments, notifications, users and settings."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def create_backup(self) -> str:
        cache = self._store.cache
        backup = {
            "timestamp": _iso_timestamp(),
            "data": {
                "appointments": await cache.get(StorageKeys.APPOINTMENTS, []),
                "notifications": await cache.get(StorageKeys.NOTIFICATIONS, []),
                "registeredUsers": await cache.get(StorageKeys.REGISTERED_USERS, []),
                "settings": await cache.get(StorageKeys.APP_SETTINGS, {}),
            },
        }
        logger.info(
            "Backup created: %d appointments, %d notifications, %d users",
            len(backup["data"]["appointments"]),
            len(backup["data"]["notifications"]),
            len(backup["data"]["registeredUsers"]),
        )
        return json.dumps(backup, ensure_ascii=False, separators=(",", ":"))

    async def restore_from_backup(self, backup_text: str) -> Dict[str, Any]:
        """
        Overwrite the four collections with the contents of ``backup_text``.

        The blob is fully parsed and type-checked before anything is written.
        Missing or null fields inside ``data`` restore as empty collections or
        an empty settings object; a blob without ``data`` changes nothing.
        """
        try:
            backup = json.loads(backup_text)
        except (TypeError, ValueError) as exc:
            logger.error("Backup is not valid JSON: %s", exc)
            raise BackupFormatError("Backup is not valid JSON") from exc
        if not isinstance(backup, dict):
            raise BackupFormatError("Backup must be a JSON object")

        data = backup.get("data")
        if data is None:
            logger.warning("Backup from %s has no data; nothing restored.", backup.get("timestamp"))
            return _summary(backup, [], [], [], restored=False)
        if not isinstance(data, dict):
            raise BackupFormatError("Backup 'data' must be a JSON object")

        appointments = _field(data, "appointments", [])
        notifications = _field(data, "notifications", [])
        users = _field(data, "registeredUsers", [])
        settings = _field(data, "settings", {})
        for name, value, expected in (
            ("appointments", appointments, list),
            ("notifications", notifications, list),
            ("registeredUsers", users, list),
            ("settings", settings, dict),
        ):
            if not isinstance(value, expected):
                raise BackupFormatError(f"Backup field '{name}' must be a {expected.__name__}")
            if expected is list and not all(isinstance(item, dict) for item in value):
                raise BackupFormatError(f"Backup field '{name}' must only hold objects")

        try:
            await self._store.appointments.save_all(appointments)
            await self._store.notifications.save_all(notifications)
            await self._store.users.save_all(users)
            await self._store.cache.set(StorageKeys.APP_SETTINGS, settings)
        except Exception:
            logger.exception("Failed to restore backup from %s", backup.get("timestamp"))
            raise

        logger.info("Backup from %s restored.", backup.get("timestamp"))
        return _summary(backup, appointments, notifications, users, restored=True)


def _field(data: Dict[str, Any], name: str, default: Any) -> Any:
    # Only absent or null fields take the default; other types are checked by the caller.
    value = data.get(name)
    return default if value is None else value


def _summary(
    backup: Dict[str, Any],
    appointments: List[Any],
    notifications: List[Any],
    users: List[Any],
    *,
    restored: bool,
) -> Dict[str, Any]:
    return {
        "timestamp": backup.get("timestamp"),
        "restored": restored,
        "appointments": len(appointments),
        "notifications": len(notifications),
        "registeredUsers": len(users),
    }
