"""Appointment booking and status transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import uuid4

from models.records import AppointmentCreate, AppointmentStatus
from services.notifications import NotificationService
from services.storage import Record, RecordStore

logger = logging.getLogger(__name__)

# Only pending appointments may change status.
_ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
}


class InvalidStatusTransition(ValueError):
    """Raised when an appointment cannot move to the requested status."""

    def __init__(self, appointment_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Appointment {appointment_id} cannot go from {current} to {target}"
        )
        self.appointment_id = appointment_id
        self.current = current
        self.target = target


@dataclass(frozen=True, slots=True)
class ReminderSummary:
    """Outcome of a reminder run."""

    date: str
    appointments: int
    notifications: int


def _public_fields(appointment: Record) -> Dict[str, Optional[str]]:
    """Fields safe for logging (no patient names)."""
    return {
        "id": appointment.get("id"),
        "doctorId": appointment.get("doctorId"),
        "date": appointment.get("date"),
        "time": appointment.get("time"),
        "status": appointment.get("status"),
    }


class AppointmentService:
    """
    Booking flow and the pending -> confirmed / cancelled lifecycle.

    Each state change is written to the appointments collection first and
    then announced through the notification log.
    """

    def __init__(self, store: RecordStore, notifications: NotificationService) -> None:
        self._appointments = store.appointments
        self._notifications = notifications

    async def book(self, request: AppointmentCreate) -> Record:
        """Store a new pending appointment and notify the doctor."""
        appointment: Record = {
            "id": uuid4().hex,
            **request.model_dump(by_alias=True),
            "status": AppointmentStatus.PENDING.value,
        }
        await self._appointments.add(appointment)
        logger.info("Appointment booked: %s", _public_fields(appointment))

        await self._notifications.notify_new_appointment(request.doctor_id, appointment)
        return appointment

    async def change_status(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        *,
        reason: Optional[str] = None,
    ) -> Optional[Record]:
        """Move an appointment to ``target`` and notify the patient; None if it does not exist."""
        target = AppointmentStatus(target)

        def transition(appointment: Record) -> Record:
            current = appointment.get("status")
            allowed = _ALLOWED_TRANSITIONS.get(_status_or_none(current), set())
            if target not in allowed:
                raise InvalidStatusTransition(appointment_id, str(current), target.value)
            return {**appointment, "status": target.value}

        updated = await self._appointments.modify_one(appointment_id, transition)
        if updated is None:
            logger.warning("Status change to %s for unknown appointment %s", target.value, appointment_id)
            return None

        logger.info("Appointment status changed: %s", _public_fields(updated))
        patient_id = updated.get("patientId")
        if target is AppointmentStatus.CONFIRMED:
            await self._notifications.notify_appointment_confirmed(patient_id, updated)
        else:
            await self._notifications.notify_appointment_cancelled(patient_id, updated, reason)
        return updated

    async def confirm(self, appointment_id: str) -> Optional[Record]:
        return await self.change_status(appointment_id, AppointmentStatus.CONFIRMED)

    async def cancel(self, appointment_id: str, reason: Optional[str] = None) -> Optional[Record]:
        return await self.change_status(appointment_id, AppointmentStatus.CANCELLED, reason=reason)

    async def send_reminders(self, date: str) -> ReminderSummary:
        """Remind patient and doctor of every confirmed appointment on ``date``."""
        due: List[Record] = [
            a
            for a in await self._appointments.list()
            if isinstance(a, dict)
            and a.get("date") == date
            and a.get("status") == AppointmentStatus.CONFIRMED.value
        ]
        sent = 0
        for appointment in due:
            for user_id in (appointment.get("patientId"), appointment.get("doctorId")):
                if user_id:
                    await self._notifications.notify_appointment_reminder(user_id, appointment)
                    sent += 1

        logger.info("Reminders for %s: %d appointments, %d notifications", date, len(due), sent)
        return ReminderSummary(date=date, appointments=len(due), notifications=sent)


def _status_or_none(value: object) -> Optional[AppointmentStatus]:
    try:
        return AppointmentStatus(value)
    except ValueError:
        return None
