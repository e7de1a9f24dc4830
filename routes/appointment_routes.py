"""Appointment and statistics API routes."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from models.records import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentStatusUpdate,
    ReminderRequest,
)
from models.statistics import DoctorStatistics, PatientStatistics, Statistics
from routes.dependencies import get_data_layer, storage_failure
from services.appointments import InvalidStatusTransition
from services.data_layer import DataLayer

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(tags=["appointments"])


@router.get("/appointments", response_model=List[Dict[str, Any]])
@limiter.limit("60/minute")
async def list_appointments(
    request: Request,
    data: DataLayer = Depends(get_data_layer),
    patient_id: Optional[str] = Query(default=None, alias="patientId"),
    doctor_id: Optional[str] = Query(default=None, alias="doctorId"),
    status: Optional[AppointmentStatus] = Query(default=None),
) -> List[Dict[str, Any]]:
    """List stored appointments, optionally filtered by patient, doctor or status."""
    appointments = [a for a in await data.store.appointments.list() if isinstance(a, dict)]
    if patient_id:
        appointments = [a for a in appointments if a.get("patientId") == patient_id]
    if doctor_id:
        appointments = [a for a in appointments if a.get("doctorId") == doctor_id]
    if status:
        appointments = [a for a in appointments if a.get("status") == status.value]
    return appointments


@router.post("/appointments", response_model=Dict[str, Any], status_code=201)
@limiter.limit("20/minute")
async def create_appointment(
    request: Request,
    body: AppointmentCreate,
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Book a pending appointment and notify the doctor."""
    try:
        return await data.appointments.book(body)
    except Exception as exc:
        raise storage_failure(exc, "book the appointment")


@router.get("/appointments/{appointment_id}", response_model=Dict[str, Any])
@limiter.limit("60/minute")
async def get_appointment(
    request: Request,
    appointment_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    appointment = await data.store.appointments.find(appointment_id)
    if appointment is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


async def _change_status(
    data: DataLayer,
    appointment_id: str,
    status: AppointmentStatus,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    try:
        updated = await data.appointments.change_status(appointment_id, status, reason=reason)
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        raise storage_failure(exc, "update the appointment")

    if updated is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return updated


@router.patch("/appointments/{appointment_id}/status", response_model=Dict[str, Any])
@limiter.limit("20/minute")
async def update_appointment_status(
    request: Request,
    body: AppointmentStatusUpdate,
    appointment_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Confirm or cancel a pending appointment."""
    return await _change_status(data, appointment_id, body.status, body.reason)


@router.post("/appointments/{appointment_id}/confirm", response_model=Dict[str, Any])
@limiter.limit("20/minute")
async def confirm_appointment(
    request: Request,
    appointment_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    return await _change_status(data, appointment_id, AppointmentStatus.CONFIRMED)


@router.post("/appointments/{appointment_id}/cancel", response_model=Dict[str, Any])
@limiter.limit("20/minute")
async def cancel_appointment(
    request: Request,
    appointment_id: str = Path(...),
    reason: Optional[str] = Query(default=None, max_length=1000),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    return await _change_status(data, appointment_id, AppointmentStatus.CANCELLED, reason)


@router.delete("/appointments/{appointment_id}", status_code=204)
@limiter.limit("20/minute")
async def delete_appointment(
    request: Request,
    appointment_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Response:
    try:
        deleted = await data.store.appointments.delete(appointment_id)
    except Exception as exc:
        raise storage_failure(exc, "delete the appointment")
    if not deleted:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return Response(status_code=204)


@router.post("/appointments/reminders", response_model=Dict[str, Any])
@limiter.limit("5/minute")
async def send_reminders(
    request: Request,
    body: ReminderRequest,
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Create reminder notifications for the confirmed appointments of a day."""
    try:
        summary = await data.appointments.send_reminders(body.date)
    except Exception as exc:
        raise storage_failure(exc, "send reminders")
    return {
        "date": summary.date,
        "appointments": summary.appointments,
        "notifications": summary.notifications,
    }


@router.get("/statistics", response_model=Statistics)
@limiter.limit("30/minute")
async def general_statistics(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Statistics:
    """System-wide statistics for the admin dashboard."""
    return await data.statistics.get_general_statistics()


@router.get("/statistics/doctors/{doctor_id}", response_model=DoctorStatistics)
@limiter.limit("30/minute")
async def doctor_statistics(
    request: Request,
    doctor_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> DoctorStatistics:
    return await data.statistics.get_doctor_statistics(doctor_id)


@router.get("/statistics/patients/{patient_id}", response_model=PatientStatistics)
@limiter.limit("30/minute")
async def patient_statistics(
    request: Request,
    patient_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> PatientStatistics:
    return await data.statistics.get_patient_statistics(patient_id)
