"""Aggregate statistics over the appointment collection.

Nothing here is cached or persisted; every call recomputes from the
current appointments.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List

from models.records import AppointmentStatus
from models.statistics import (
    DoctorStatistics,
    PatientStatistics,
    Statistics,
    StatusPercentages,
)
from services.storage import Record, RecordStore
from utils.dates import month_key

logger = logging.getLogger(__name__)


def count_by_status(appointments: List[Record]) -> Dict[str, Any]:
    """Status totals and percentages shared by every statistics variant."""
    counts = Counter(a.get("status") for a in appointments)
    total = len(appointments)
    confirmed = counts[AppointmentStatus.CONFIRMED.value]
    pending = counts[AppointmentStatus.PENDING.value]
    cancelled = counts[AppointmentStatus.CANCELLED.value]

    if total > 0:
        percentages = StatusPercentages(
            confirmed=confirmed / total * 100,
            pending=pending / total * 100,
            cancelled=cancelled / total * 100,
        )
    else:
        percentages = StatusPercentages()

    return {
        "total_appointments": total,
        "confirmed_appointments": confirmed,
        "pending_appointments": pending,
        "cancelled_appointments": cancelled,
        "status_percentages": percentages,
    }


def count_distinct(appointments: Iterable[Record], field: str) -> int:
    return len({a.get(field) for a in appointments})


def count_by_specialty(appointments: Iterable[Record]) -> Dict[str, int]:
    specialties: Dict[str, int] = {}
    for appointment in appointments:
        specialty = appointment.get("specialty")
        if not isinstance(specialty, str):
            continue
        specialties[specialty] = specialties.get(specialty, 0) + 1
    return specialties


def count_by_month(appointments: Iterable[Record]) -> Dict[str, int]:
    """Group by ``MM/YYYY``; malformed dates are skipped with a warning."""
    months: Dict[str, int] = {}
    for appointment in appointments:
        key = month_key(appointment.get("date"))
        if key is None:
            logger.warning(
                "Invalid date %r on appointment %s; skipped in monthly totals.",
                appointment.get("date"),
                appointment.get("id"),
            )
            continue
        months[key] = months.get(key, 0) + 1
    return months


def compute_statistics(appointments: List[Record]) -> Statistics:
    return Statistics(
        **count_by_status(appointments),
        total_patients=count_distinct(appointments, "patientId"),
        total_doctors=count_distinct(appointments, "doctorId"),
        specialties=count_by_specialty(appointments),
        appointments_by_month=count_by_month(appointments),
    )


def compute_doctor_statistics(appointments: List[Record], doctor_id: str) -> DoctorStatistics:
    scoped = [a for a in appointments if a.get("doctorId") == doctor_id]
    return DoctorStatistics(
        **count_by_status(scoped),
        total_patients=count_distinct(scoped, "patientId"),
    )


def compute_patient_statistics(appointments: List[Record], patient_id: str) -> PatientStatistics:
    scoped = [a for a in appointments if a.get("patientId") == patient_id]
    return PatientStatistics(
        **count_by_status(scoped),
        total_doctors=count_distinct(scoped, "doctorId"),
        specialties=count_by_specialty(scoped),
    )


class StatisticsService:
    """Reads appointments through the record store and aggregates them."""

    def __init__(self, store: RecordStore) -> None:
        self._appointments = store.appointments

    async def _load(self) -> List[Record]:
        return [a for a in await self._appointments.list() if isinstance(a, dict)]

    async def get_general_statistics(self) -> Statistics:
        try:
            return compute_statistics(await self._load())
        except Exception:
            logger.exception("Failed to compute general statistics")
            return Statistics()

    async def get_doctor_statistics(self, doctor_id: str) -> DoctorStatistics:
        try:
            return compute_doctor_statistics(await self._load(), doctor_id)
        except Exception:
            logger.exception("Failed to compute statistics for doctor %s", doctor_id)
            return DoctorStatistics()

    async def get_patient_statistics(self, patient_id: str) -> PatientStatistics:
        try:
            return compute_patient_statistics(await self._load(), patient_id)
        except Exception:
            logger.exception("Failed to compute statistics for patient %s", patient_id)
            return PatientStatistics()
