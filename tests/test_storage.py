"""Tests for the record store collections, settings and session keys."""

import asyncio
import json

import pytest
from conftest import YieldingDurableStore, make_appointment, make_user

from db.durable_store import DurableStoreError
from models.records import Appointment
from services.cache import CacheLayer
from services.storage import (
    DEFAULT_APP_SETTINGS,
    RecordStore,
    RecordValidationError,
    StorageKeys,
    validate_appointment,
    validate_user,
)


class TestValidation:
    """Advisory shape checks."""

    def test_valid_appointment(self):
        assert validate_appointment(make_appointment()) is True

    def test_appointment_with_unknown_status(self):
        assert validate_appointment(make_appointment(status="done")) is False

    def test_appointment_with_non_string_id(self):
        assert validate_appointment(make_appointment(id=123)) is False

    def test_appointment_missing_required_field(self):
        appointment = make_appointment()
        del appointment["time"]
        assert validate_appointment(appointment) is False

    def test_non_mapping_is_invalid(self):
        assert validate_appointment(None) is False
        assert validate_user(["user"]) is False

    def test_valid_user(self):
        assert validate_user(make_user()) is True
        assert validate_user(make_user(role="doctor", specialty="Pediatria")) is True

    def test_user_with_unknown_role(self):
        assert validate_user(make_user(role="nurse")) is False

    def test_appointment_with_snake_case_keys(self):
        appointment = make_appointment()
        appointment["patient_id"] = appointment.pop("patientId")
        appointment["doctor_id"] = appointment.pop("doctorId")

        assert validate_appointment(appointment) is False


class TestRecordCollection:
    """CRUD over a whole-collection key."""

    @pytest.mark.asyncio
    async def test_empty_collection(self, store):
        assert await store.appointments.list() == []

    @pytest.mark.asyncio
    async def test_add_appends_in_order(self, store, durable_store):
        await store.appointments.add(make_appointment(id="a"))
        await store.appointments.add(make_appointment(id="b"))

        assert [a["id"] for a in await store.appointments.list()] == ["a", "b"]
        stored = json.loads(await durable_store.get(StorageKeys.APPOINTMENTS))
        assert [a["id"] for a in stored] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_add_accepts_models(self, store):
        model = Appointment.model_validate(make_appointment())
        await store.appointments.add(model)

        assert await store.appointments.list() == [make_appointment()]

    @pytest.mark.asyncio
    async def test_add_keeps_duplicate_ids_in_permissive_mode(self, store):
        await store.appointments.add(make_appointment())
        await store.appointments.add(make_appointment())

        assert len(await store.appointments.list()) == 2

    @pytest.mark.asyncio
    async def test_update_merges_patch(self, store):
        await store.appointments.add(make_appointment(id="a"))
        await store.appointments.add(make_appointment(id="b"))

        updated = await store.appointments.update("b", {"status": "confirmed"})

        assert updated["status"] == "confirmed"
        records = await store.appointments.list()
        assert records[0]["status"] == "pending"
        assert records[1] == make_appointment(id="b", status="confirmed")

    @pytest.mark.asyncio
    async def test_update_unknown_id_is_noop(self, store):
        await store.appointments.save_all([make_appointment()])

        assert await store.appointments.update("nonexistent-id", {"status": "cancelled"}) is None
        assert await store.appointments.list() == [make_appointment()]

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, store):
        await store.appointments.save_all([make_appointment(id="a"), make_appointment(id="b")])

        assert await store.appointments.delete("a") is True
        assert [a["id"] for a in await store.appointments.list()] == ["b"]

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_noop(self, store):
        await store.appointments.save_all([make_appointment()])

        assert await store.appointments.delete("nonexistent-id") is False
        assert await store.appointments.list() == [make_appointment()]

    @pytest.mark.asyncio
    async def test_find(self, store):
        await store.users.save_all([make_user(id="u1"), make_user(id="u2", name="Bruno")])

        assert (await store.users.find("u2"))["name"] == "Bruno"
        assert await store.users.find("u3") is None

    @pytest.mark.asyncio
    async def test_corrupt_collection_reads_as_empty(self, store, durable_store):
        await durable_store.set(StorageKeys.APPOINTMENTS, '{"not": "a list"}')
        assert await store.appointments.list() == []

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, store, durable_store):
        durable_store.fail_writes = True
        with pytest.raises(DurableStoreError):
            await store.appointments.add(make_appointment())

    @pytest.mark.asyncio
    async def test_concurrent_adds_are_not_lost(self):
        store = RecordStore(CacheLayer(YieldingDurableStore()))

        await asyncio.gather(
            *(store.appointments.add(make_appointment(id=f"apt-{i}")) for i in range(20))
        )

        ids = {a["id"] for a in await store.appointments.list()}
        assert ids == {f"apt-{i}" for i in range(20)}

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self):
        store = RecordStore(CacheLayer(YieldingDurableStore()))
        await store.appointments.save_all([make_appointment(id="a"), make_appointment(id="b")])

        await asyncio.gather(
            store.appointments.update("a", {"status": "confirmed"}),
            store.appointments.update("b", {"status": "cancelled"}),
        )

        statuses = {a["id"]: a["status"] for a in await store.appointments.list()}
        assert statuses == {"a": "confirmed", "b": "cancelled"}


class TestStrictValidation:
    """Strict mode rejects malformed and duplicate records."""

    @pytest.mark.asyncio
    async def test_rejects_invalid_record(self, strict_store):
        with pytest.raises(RecordValidationError):
            await strict_store.appointments.add(make_appointment(status="unknown"))
        assert await strict_store.appointments.list() == []

    @pytest.mark.asyncio
    async def test_rejects_record_without_stored_keys(self, strict_store):
        appointment = make_appointment()
        appointment["patient_id"] = appointment.pop("patientId")

        with pytest.raises(RecordValidationError):
            await strict_store.appointments.add(appointment)
        assert await strict_store.appointments.list() == []

    @pytest.mark.asyncio
    async def test_rejects_duplicate_id(self, strict_store):
        await strict_store.users.add(make_user())
        with pytest.raises(RecordValidationError):
            await strict_store.users.add(make_user())
        assert len(await strict_store.users.list()) == 1

    @pytest.mark.asyncio
    async def test_rejects_invalid_update(self, strict_store):
        await strict_store.appointments.add(make_appointment())

        with pytest.raises(RecordValidationError):
            await strict_store.appointments.update("apt-1", {"status": "archived"})

        assert (await strict_store.appointments.find("apt-1"))["status"] == "pending"

    @pytest.mark.asyncio
    async def test_notifications_are_not_shape_checked(self, strict_store):
        await strict_store.notifications.add({"id": "n1"})
        assert await strict_store.notifications.list() == [{"id": "n1"}]


class TestSettingsAndSession:
    """Settings blob and current-user session keys."""

    @pytest.mark.asyncio
    async def test_default_settings(self, store):
        assert await store.get_app_settings() == DEFAULT_APP_SETTINGS

    @pytest.mark.asyncio
    async def test_update_settings_merges(self, store):
        settings = await store.update_app_settings({"theme": "dark"})

        assert settings == {**DEFAULT_APP_SETTINGS, "theme": "dark"}
        assert await store.get_app_settings() == settings

    @pytest.mark.asyncio
    async def test_session_round_trip(self, store):
        await store.save_session(make_user(), "token-123")

        assert await store.get_current_user() == make_user()
        assert await store.get_token() == "token-123"

        await store.update_current_user(make_user(name="Ana S."))
        assert (await store.get_current_user())["name"] == "Ana S."

        await store.clear_session()
        assert await store.get_current_user() is None
        assert await store.get_token() is None

    @pytest.mark.asyncio
    async def test_clear_all(self, store, durable_store):
        await store.appointments.add(make_appointment())
        await store.update_app_settings({"theme": "dark"})

        await store.clear_all()

        assert await durable_store.list_keys() == []
        assert await store.appointments.list() == []
