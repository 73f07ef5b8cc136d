"""
Appointment API endpoints.

Booking, reschedule, status changes and cancellation. Domain failures are
returned as HTTP errors whose detail is {code, message}.
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from api.responses import AllocationPlanResponse, AppointmentResponse
from api.shared import failure_to_http_exception
from core.constants import MAX_NOTES_LENGTH
from core.database import get_db
from core.errors import AllocationErrorCode, AllocationFailure
from services.appointment_service import AppointmentService
from services.reschedule_coordinator import RescheduleCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()

AppointmentStatus = Literal["scheduled", "confirmed", "completed", "cancelled", "no_show"]


def _validate_notes(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > MAX_NOTES_LENGTH:
        raise ValueError(f'Notes must be at most {MAX_NOTES_LENGTH} characters')
    return v


class AppointmentCreateRequest(BaseModel):
    """Request model for booking an appointment."""
    service_id: int
    starts_at: datetime  # ISO-8601; naive values are taken as UTC
    patient_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _validate_notes(v)


class AppointmentUpdateRequest(BaseModel):
    """Request model for updating an appointment. Omitted fields are left unchanged."""
    starts_at: Optional[datetime] = None
    service_id: Optional[int] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _validate_notes(v)


class AppointmentCreateResponse(BaseModel):
    """Response model for a new booking."""
    appointment: AppointmentResponse
    plan: AllocationPlanResponse


@router.post("/appointments", summary="Book an appointment", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db)
) -> AppointmentCreateResponse:
    """
    Book an appointment for a service at a start time.

    Plans professional and resource assignments for every phase and persists
    them together with the appointment.
    """
    result = AppointmentService.create_appointment(
        db,
        service_id=request.service_id,
        starts_at=request.starts_at,
        patient_id=request.patient_id,
        notes=request.notes,
    )
    if isinstance(result, AllocationFailure):
        raise failure_to_http_exception(result)

    appointment, plan = result
    return AppointmentCreateResponse(
        appointment=AppointmentResponse.from_appointment(appointment),
        plan=AllocationPlanResponse.from_plan(plan),
    )


@router.get("/appointments/{appointment_id}", summary="Get an appointment")
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """Get an appointment and its allocation records."""
    appointment = AppointmentService.get_appointment(db, appointment_id)
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": AllocationErrorCode.NOT_FOUND.value,
                "message": f"Appointment {appointment_id} not found",
            }
        )
    return AppointmentResponse.from_appointment(appointment)


@router.patch("/appointments/{appointment_id}", summary="Update an appointment")
async def update_appointment(
    appointment_id: int,
    request: AppointmentUpdateRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Update an appointment.

    A new start time or service reschedules it atomically: either the new
    allocations replace the old ones or nothing changes.
    """
    result = AppointmentService.update_appointment(
        db,
        appointment_id,
        starts_at=request.starts_at,
        service_id=request.service_id,
        status=request.status,
        notes=request.notes,
    )
    if isinstance(result, AllocationFailure):
        raise failure_to_http_exception(result)

    return AppointmentResponse.from_appointment(result)


@router.delete("/appointments/{appointment_id}", summary="Cancel an appointment")
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Cancel an appointment and free its professional capacity and resources.

    Cancelling an already-cancelled appointment succeeds without changes.
    """
    result = RescheduleCoordinator(db).cancel(appointment_id)
    if isinstance(result, AllocationFailure):
        raise failure_to_http_exception(result)

    return AppointmentResponse.from_appointment(result)
