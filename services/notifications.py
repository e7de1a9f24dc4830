"""In-app notification log for appointment scheduling events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import uuid4

from models.records import NotificationType
from services.storage import Record, RecordStore

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _created_at_key(notification: Record) -> datetime:
    raw = notification.get("createdAt")
    if isinstance(raw, str) and raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        created_at = datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        return _OLDEST
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at


class NotificationService:
    """
    Per-user notifications with read/unread state.

    A notification is created unread and can only move to read; deletion is
    the one other way it leaves the log.
    """

    def __init__(self, store: RecordStore) -> None:
        self._notifications = store.notifications

    async def list(self, user_id: str) -> List[Record]:
        """Return ``user_id``'s notifications, most recent first."""
        notifications = [
            n
            for n in await self._notifications.list()
            if isinstance(n, dict) and n.get("userId") == user_id
        ]
        return sorted(notifications, key=_created_at_key, reverse=True)

    async def create(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        appointment_id: Optional[str] = None,
    ) -> Record:
        notification: Record = {
            "id": uuid4().hex,
            "userId": user_id,
            "title": title,
            "message": message,
            "type": NotificationType(type).value,
            "read": False,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        if appointment_id is not None:
            notification["appointmentId"] = appointment_id

        await self._notifications.add(notification)
        logger.info("Notification %s (%s) created for user %s", notification["id"], notification["type"], user_id)
        return notification

    async def mark_read(self, notification_id: str) -> Optional[Record]:
        return await self._notifications.modify_one(
            notification_id, lambda n: {**n, "read": True}
        )

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of ``user_id`` as read; returns how many flipped."""
        return await self._notifications.modify_where(
            lambda n: n.get("userId") == user_id and not n.get("read"),
            lambda n: {**n, "read": True},
        )

    async def delete(self, notification_id: str) -> bool:
        return await self._notifications.delete(notification_id)

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for n in await self.list(user_id) if not n.get("read"))

    # ---- Appointment templates ----

    async def notify_appointment_confirmed(
        self, patient_id: str, appointment: Mapping[str, Any]
    ) -> Record:
        return await self.create(
            user_id=patient_id,
            type=NotificationType.APPOINTMENT_CONFIRMED,
            title="Consulta Confirmada",
            message=(
                f"Sua consulta com {appointment.get('doctorName')} foi confirmada "
                f"para {appointment.get('date')} às {appointment.get('time')}."
            ),
            appointment_id=appointment.get("id"),
        )

    async def notify_appointment_cancelled(
        self,
        patient_id: str,
        appointment: Mapping[str, Any],
        reason: Optional[str] = None,
    ) -> Record:
        reason_line = f" Motivo: {reason}" if reason else ""
        return await self.create(
            user_id=patient_id,
            type=NotificationType.APPOINTMENT_CANCELLED,
            title="Consulta Cancelada",
            message=f"Sua consulta com {appointment.get('doctorName')} foi cancelada.{reason_line}",
            appointment_id=appointment.get("id"),
        )

    async def notify_new_appointment(
        self, doctor_id: str, appointment: Mapping[str, Any]
    ) -> Record:
        return await self.create(
            user_id=doctor_id,
            type=NotificationType.GENERAL,
            title="Nova Consulta Agendada",
            message=(
                f"{appointment.get('patientName')} agendou uma consulta "
                f"para {appointment.get('date')} às {appointment.get('time')}."
            ),
            appointment_id=appointment.get("id"),
        )

    async def notify_appointment_reminder(
        self, user_id: str, appointment: Mapping[str, Any]
    ) -> Record:
        # Doctors are reminded of the patient, everyone else of the doctor.
        if user_id == appointment.get("doctorId"):
            counterpart = appointment.get("patientName") or appointment.get("doctorName")
        else:
            counterpart = appointment.get("doctorName") or appointment.get("patientName")
        return await self.create(
            user_id=user_id,
            type=NotificationType.APPOINTMENT_REMINDER,
            title="Lembrete de Consulta",
            message=(
                f"Você tem uma consulta agendada para amanhã às "
                f"{appointment.get('time')} com {counterpart}."
            ),
            appointment_id=appointment.get("id"),
        )
