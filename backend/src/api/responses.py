"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from models import Appointment, AppointmentAllocation
from shared_types import AllocationPlan, SmartAvailability
from utils.datetime_utils import format_utc_iso


class ErrorResponse(BaseModel):
    """Error body carrying one failure code."""
    code: str
    message: str


class AllocationResponse(BaseModel):
    """Response model for one phase allocation."""
    id: Optional[int] = None  # None for planned (not persisted) allocations
    phase_id: Optional[int] = None  # None for the virtual phase of a simple service
    professional_id: int
    physical_resource_id: Optional[int] = None
    starts_at: str  # ISO-8601 UTC, e.g. "2030-01-07T12:00:00Z"
    ends_at: str
    fraction_consumed: float


class AllocationPlanResponse(BaseModel):
    """Response model for a computed allocation plan."""
    service_id: int
    starts_at: str
    ends_at: str
    professional_id: int
    allocations: List[AllocationResponse]

    @classmethod
    def from_plan(cls, plan: AllocationPlan) -> "AllocationPlanResponse":
        return cls(
            service_id=plan.service_id,
            starts_at=format_utc_iso(plan.starts_at),
            ends_at=format_utc_iso(plan.ends_at),
            professional_id=plan.professional_id,
            allocations=[
                AllocationResponse(
                    phase_id=allocation.phase_id,
                    professional_id=allocation.professional_id,
                    physical_resource_id=allocation.physical_resource_id,
                    starts_at=format_utc_iso(allocation.starts_at),
                    ends_at=format_utc_iso(allocation.ends_at),
                    fraction_consumed=allocation.fraction_consumed,
                )
                for allocation in plan.allocations
            ],
        )


class AppointmentResponse(BaseModel):
    """Response model for an appointment with its allocation records."""
    id: int
    service_id: int
    patient_id: Optional[int] = None
    starts_at: str
    ends_at: str
    status: str
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    allocations: List[AllocationResponse] = []

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        rows: List[AppointmentAllocation] = list(appointment.allocations)
        return cls(
            id=appointment.id,
            service_id=appointment.service_id,
            patient_id=appointment.patient_id,
            starts_at=format_utc_iso(appointment.starts_at),
            ends_at=format_utc_iso(appointment.ends_at),
            status=appointment.status,
            notes=appointment.notes,
            cancelled_at=appointment.cancelled_at,
            allocations=[
                AllocationResponse(
                    id=row.id,
                    phase_id=row.service_phase_id,
                    professional_id=row.professional_id,
                    physical_resource_id=row.physical_resource_id,
                    starts_at=format_utc_iso(row.starts_at),
                    ends_at=format_utc_iso(row.ends_at),
                    fraction_consumed=row.fraction_consumed,
                )
                for row in rows
            ],
        )


class AvailableSlotsMeta(BaseModel):
    total: int
    date: str  # Format: "YYYY-MM-DD"
    service_id: int


class AvailableSlotsResponse(BaseModel):
    """Response model for the available start times of one day."""
    data: List[str]
    meta: AvailableSlotsMeta


class ContinuousBlockResponse(BaseModel):
    start_time: str  # Clinic local "HH:MM"
    end_time: str


class SlotGroupsResponse(BaseModel):
    """Slots grouped by clinic local time of day."""
    morning: List[str] = []
    afternoon: List[str] = []
    evening: List[str] = []


class SmartAvailabilityResponse(BaseModel):
    """Response model for the lookahead availability search."""
    requested_date: str
    actual_date_searched: str
    slots: SlotGroupsResponse
    continuous_blocks: List[ContinuousBlockResponse]
    hint: str
    raw_slots: List[str]

    @classmethod
    def from_result(cls, result: SmartAvailability) -> "SmartAvailabilityResponse":
        return cls(
            requested_date=result.requested_date.isoformat(),
            actual_date_searched=result.actual_date_searched.isoformat(),
            slots=SlotGroupsResponse(
                morning=result.morning,
                afternoon=result.afternoon,
                evening=result.evening,
            ),
            continuous_blocks=[
                ContinuousBlockResponse(start_time=block.start_time, end_time=block.end_time)
                for block in result.continuous_blocks
            ],
            hint=result.hint,
            raw_slots=result.raw_slots,
        )


class AvailabilityCheckResponse(BaseModel):
    """
    Soft availability answer for agent-style callers.

    Domain failures are reported with available=False instead of an HTTP error.
    """
    available: bool
    reason: Optional[str] = None  # Failure code
    technical_detail: Optional[str] = None  # Failure message
    hint: Optional[str] = None
    plan: Optional[AllocationPlanResponse] = None
