"""Collections of records kept under fixed keys of the cache layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from models.records import Appointment, User
from services.cache import CacheLayer

logger = logging.getLogger(__name__)


class StorageKeys:
    """Reserved keys of the durable store. Caller-chosen keys must not reuse this prefix."""

    USER = "@MedicalApp:user"
    TOKEN = "@MedicalApp:token"
    APPOINTMENTS = "@MedicalApp:appointments"
    NOTIFICATIONS = "@MedicalApp:notifications"
    REGISTERED_USERS = "@MedicalApp:registeredUsers"
    APP_SETTINGS = "@MedicalApp:settings"
    STATISTICS_CACHE = "@MedicalApp:statisticsCache"


DEFAULT_APP_SETTINGS: Dict[str, Any] = {
    "theme": "light",
    "notifications": True,
    "language": "pt-BR",
    "autoBackup": True,
}

Record = Dict[str, Any]
RecordInput = Union[Mapping[str, Any], BaseModel]


class RecordValidationError(ValueError):
    """Raised in strict mode when a record fails its shape check."""


def validate_appointment(appointment: Any) -> bool:
    """Return True when ``appointment`` has the shape of an Appointment record."""
    if not isinstance(appointment, Mapping):
        return False
    try:
        Appointment.model_validate(appointment)
    except ValidationError:
        return False
    return True


def validate_user(user: Any) -> bool:
    """Return True when ``user`` has the shape of a User record."""
    if not isinstance(user, Mapping):
        return False
    try:
        User.model_validate(user)
    except ValidationError:
        return False
    return True


def _as_record(record: RecordInput) -> Record:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(record)


class RecordCollection:
    """
    An ordered list of records stored as a single value.

    Every mutation reads the whole list, changes it in memory and writes it
    back. The read-modify-write cycle runs under a per-collection lock so
    overlapping mutations cannot drop each other's changes.
    """

    def __init__(
        self,
        cache: CacheLayer,
        key: str,
        *,
        name: str,
        validator: Optional[Callable[[Any], bool]] = None,
        strict: bool = False,
    ) -> None:
        self._cache = cache
        self.key = key
        self.name = name
        self._validator = validator
        self._strict = strict
        self._lock = asyncio.Lock()

    async def _read(self) -> List[Record]:
        records = await self._cache.get(self.key, [])
        if not isinstance(records, list):
            logger.warning("Collection %s holds %s, not a list; treating as empty.", self.name, type(records).__name__)
            return []
        return records

    def _check(self, record: Record) -> None:
        if self._strict and self._validator is not None and not self._validator(record):
            raise RecordValidationError(f"Invalid {self.name} record: {record.get('id')!r}")

    async def list(self) -> List[Record]:
        return await self._read()

    async def find(self, record_id: str) -> Optional[Record]:
        for record in await self._read():
            if isinstance(record, dict) and record.get("id") == record_id:
                return record
        return None

    async def save_all(self, records: List[RecordInput]) -> None:
        async with self._lock:
            await self._cache.set(self.key, [_as_record(r) for r in records])

    async def add(self, record: RecordInput) -> Record:
        """Append ``record``. Duplicate ids are only rejected in strict mode."""
        new_record = _as_record(record)
        self._check(new_record)
        async with self._lock:
            records = await self._read()
            if self._strict and any(
                isinstance(r, dict) and r.get("id") == new_record.get("id") for r in records
            ):
                raise RecordValidationError(f"Duplicate {self.name} id: {new_record.get('id')!r}")
            records.append(new_record)
            await self._cache.set(self.key, records)
        return new_record

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        """Merge ``patch`` into the record with ``record_id``; unknown ids are a no-op."""
        return await self.modify_one(record_id, lambda record: {**record, **patch})

    async def modify_one(
        self, record_id: str, change: Callable[[Record], Record]
    ) -> Optional[Record]:
        """Replace the record with ``record_id`` by ``change(record)``."""
        async with self._lock:
            records = await self._read()
            updated: Optional[Record] = None
            for index, record in enumerate(records):
                if isinstance(record, dict) and record.get("id") == record_id:
                    updated = change(record)
                    self._check(updated)
                    records[index] = updated
            if updated is None:
                logger.debug("No %s with id %s; nothing to update.", self.name, record_id)
                return None
            await self._cache.set(self.key, records)
        return updated

    async def modify_where(
        self, predicate: Callable[[Record], bool], change: Callable[[Record], Record]
    ) -> int:
        """Apply ``change`` to every record matching ``predicate``; returns how many changed."""
        async with self._lock:
            records = await self._read()
            changed = 0
            for index, record in enumerate(records):
                if isinstance(record, dict) and predicate(record):
                    new_record = change(record)
                    if new_record != record:
                        records[index] = new_record
                        changed += 1
            if changed:
                await self._cache.set(self.key, records)
        return changed

    async def delete(self, record_id: str) -> bool:
        """Remove the record with ``record_id``; returns False when absent."""
        async with self._lock:
            records = await self._read()
            remaining = [
                r for r in records if not (isinstance(r, dict) and r.get("id") == record_id)
            ]
            if len(remaining) == len(records):
                logger.debug("No %s with id %s; nothing to delete.", self.name, record_id)
                return False
            await self._cache.set(self.key, remaining)
        return True


class RecordStore:
    """Typed access to the application's collections, settings and session."""

    def __init__(self, cache: CacheLayer, *, strict_validation: bool = False) -> None:
        self.cache = cache
        self.strict_validation = strict_validation
        self.appointments = RecordCollection(
            cache,
            StorageKeys.APPOINTMENTS,
            name="appointment",
            validator=validate_appointment,
            strict=strict_validation,
        )
        self.users = RecordCollection(
            cache,
            StorageKeys.REGISTERED_USERS,
            name="user",
            validator=validate_user,
            strict=strict_validation,
        )
        self.notifications = RecordCollection(
            cache,
            StorageKeys.NOTIFICATIONS,
            name="notification",
        )
        self._settings_lock = asyncio.Lock()

    # ---- Settings ----

    async def get_app_settings(self) -> Dict[str, Any]:
        settings = await self.cache.get(StorageKeys.APP_SETTINGS, dict(DEFAULT_APP_SETTINGS))
        if not isinstance(settings, dict):
            logger.warning("Stored settings are not an object; using defaults.")
            return dict(DEFAULT_APP_SETTINGS)
        return settings

    async def update_app_settings(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        async with self._settings_lock:
            settings = {**await self.get_app_settings(), **changes}
            await self.cache.set(StorageKeys.APP_SETTINGS, settings)
        return settings

    # ---- Session ----

    async def save_session(self, user: RecordInput, token: str) -> None:
        await self.cache.set(StorageKeys.USER, _as_record(user))
        await self.cache.set(StorageKeys.TOKEN, token)

    async def get_current_user(self) -> Optional[Record]:
        return await self.cache.get(StorageKeys.USER)

    async def get_token(self) -> Optional[str]:
        return await self.cache.get(StorageKeys.TOKEN)

    async def update_current_user(self, user: RecordInput) -> None:
        await self.cache.set(StorageKeys.USER, _as_record(user))

    async def clear_session(self) -> None:
        await self.cache.remove(StorageKeys.USER)
        await self.cache.remove(StorageKeys.TOKEN)

    # ---- Maintenance ----

    async def clear_all(self) -> None:
        await self.cache.clear_all()

    def clear_cache(self) -> None:
        self.cache.clear_cache()
