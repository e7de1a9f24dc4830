"""Pydantic models for the aggregates computed from the appointment collection."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StatisticsModel(BaseModel):
    """Serialised with camelCase keys, as the dashboards expect."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusPercentages(StatisticsModel):
    """Share of each status in the appointment set, in percent."""

    confirmed: float = 0.0
    pending: float = 0.0
    cancelled: float = 0.0


class _StatusCounts(StatisticsModel):
    total_appointments: int = 0
    confirmed_appointments: int = 0
    pending_appointments: int = 0
    cancelled_appointments: int = 0
    status_percentages: StatusPercentages = Field(default_factory=StatusPercentages)


class Statistics(_StatusCounts):
    """System-wide statistics for the admin dashboard."""

    total_patients: int = 0
    total_doctors: int = 0
    specialties: Dict[str, int] = Field(default_factory=dict)
    appointments_by_month: Dict[str, int] = Field(default_factory=dict)


class DoctorStatistics(_StatusCounts):
    """Statistics scoped to one doctor's appointments."""

    total_patients: int = 0


class PatientStatistics(_StatusCounts):
    """Statistics scoped to one patient's appointments."""

    total_doctors: int = 0
    specialties: Dict[str, int] = Field(default_factory=dict)
