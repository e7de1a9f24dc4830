"""Pydantic models for the records kept in the local data layer.

Records are persisted as camelCase JSON objects (``patientId``,
``createdAt``...). Record models only accept those stored keys, so a
snake_case dict does not pass as a record.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    """Role of a registered user."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class NotificationType(str, Enum):
    """Kind of in-app notification."""

    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_REMINDER = "appointment_reminder"
    GENERAL = "general"


class RecordModel(BaseModel):
    """Base for persisted records: camelCase keys only, no type coercion."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        use_enum_values=True,
    )


class Appointment(RecordModel):
    """A booked consultation between a patient and a doctor."""

    id: StrictStr
    patient_id: StrictStr
    doctor_id: StrictStr
    date: StrictStr = Field(..., description="Consultation day as DD/MM/YYYY")
    time: StrictStr = Field(..., description="Consultation time as HH:MM")
    status: AppointmentStatus
    patient_name: Optional[StrictStr] = None
    doctor_name: Optional[StrictStr] = None
    specialty: Optional[StrictStr] = None


class User(RecordModel):
    """A registered application user."""

    id: StrictStr
    name: StrictStr
    email: StrictStr
    role: UserRole
    image: Optional[StrictStr] = None
    # only meaningful for doctors
    specialty: Optional[StrictStr] = None


class Notification(RecordModel):
    """An entry of a user's notification log."""

    id: StrictStr
    user_id: StrictStr
    title: StrictStr
    message: StrictStr
    type: NotificationType
    read: StrictBool = False
    created_at: StrictStr
    appointment_id: Optional[StrictStr] = None


class AppointmentCreate(BaseModel):
    """Request model for booking an appointment."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    patient_id: str = Field(..., min_length=1)
    patient_name: str = Field(..., min_length=1, max_length=255)
    doctor_id: str = Field(..., min_length=1)
    doctor_name: str = Field(..., min_length=1, max_length=255)
    date: str = Field(..., pattern=r"^\d{2}/\d{2}/\d{4}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    specialty: str = Field(..., min_length=1, max_length=120)


class AppointmentStatusUpdate(BaseModel):
    """Request model for an administrative status change."""

    status: AppointmentStatus
    reason: Optional[str] = Field(default=None, max_length=1000)


class UserCreate(BaseModel):
    """Request model for registering a user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: UserRole
    image: Optional[str] = None
    specialty: Optional[str] = Field(default=None, max_length=120)


class ReminderRequest(BaseModel):
    """Request model for dispatching reminders for a given day."""

    date: str = Field(..., pattern=r"^\d{2}/\d{2}/\d{4}$")
