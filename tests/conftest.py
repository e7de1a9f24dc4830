"""
Shared pytest fixtures.

Every test gets a fresh in-memory durable store, cache and record store, so
no state leaks between tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from db.durable_store import DurableStoreError, MemoryDurableStore
from services.cache import CacheLayer
from services.data_layer import build_data_layer
from services.storage import RecordStore


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


class FlakyDurableStore(MemoryDurableStore):
    """Memory store whose operations can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key):
        if self.fail_reads:
            raise DurableStoreError("read failed")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise DurableStoreError("write failed")
        await super().set(key, value)

    async def remove(self, key):
        if self.fail_writes:
            raise DurableStoreError("remove failed")
        await super().remove(key)

    async def clear(self):
        if self.fail_writes:
            raise DurableStoreError("clear failed")
        await super().clear()


class YieldingDurableStore(MemoryDurableStore):
    """Memory store that suspends on every call, so coroutines interleave."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        await super().set(key, value)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def durable_store() -> FlakyDurableStore:
    return FlakyDurableStore()


@pytest.fixture
def cache(durable_store, clock) -> CacheLayer:
    return CacheLayer(durable_store, clock=clock)


@pytest.fixture
def store(cache) -> RecordStore:
    return RecordStore(cache)


@pytest.fixture
def strict_store(cache) -> RecordStore:
    return RecordStore(cache, strict_validation=True)


@pytest.fixture
def data_layer(durable_store, clock):
    return build_data_layer(durable_store, clock=clock)


def make_appointment(**overrides: Any) -> Dict[str, Any]:
    appointment = {
        "id": "apt-1",
        "patientId": "patient-1",
        "patientName": "Ana Souza",
        "doctorId": "doctor-1",
        "doctorName": "Dr. Carlos Lima",
        "date": "15/05/2024",
        "time": "09:30",
        "specialty": "Cardiologia",
        "status": "pending",
    }
    appointment.update(overrides)
    return appointment


def make_user(**overrides: Any) -> Dict[str, Any]:
    user = {
        "id": "user-1",
        "name": "Ana Souza",
        "email": "ana@example.com",
        "role": "patient",
        "image": "https://example.com/ana.png",
    }
    user.update(overrides)
    return user


@pytest.fixture
def client(durable_store, clock):
    """TestClient over the API with a fresh data layer and reset rate limits."""
    import main
    from routes import admin_routes, appointment_routes, notification_routes

    for module in (admin_routes, appointment_routes, notification_routes):
        module.limiter.reset()

    main.app.state.data_layer = build_data_layer(durable_store, clock=clock)
    with TestClient(main.app) as test_client:
        yield test_client
