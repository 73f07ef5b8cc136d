"""
Appointment service for booking and lifecycle management.

This module handles:
- Commit-mode booking (plan and persist in one transaction)
- Status transitions (scheduled -> confirmed -> completed, cancelled / no_show)
- Combined updates that may reschedule, change status and edit notes
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Set, Tuple, Union

from sqlalchemy.orm import Session, selectinload

from core.constants import (
    APPOINTMENT_STATUS_CANCELLED,
    APPOINTMENT_STATUS_COMPLETED,
    APPOINTMENT_STATUS_CONFIRMED,
    APPOINTMENT_STATUS_NO_SHOW,
    APPOINTMENT_STATUS_SCHEDULED,
    APPOINTMENT_STATUSES,
)
from core.errors import AllocationErrorCode, AllocationFailure
from models import Appointment
from services.allocation_planner import AllocationPlanner
from services.reschedule_coordinator import RescheduleCoordinator, lock_for_service
from shared_types import AllocationPlan
from utils.datetime_utils import ensure_utc, truncate_to_minute, utc_now

logger = logging.getLogger(__name__)

# Allowed status transitions (cancellation goes through RescheduleCoordinator.cancel)
ALLOWED_STATUS_TRANSITIONS: Dict[str, Set[str]] = {
    APPOINTMENT_STATUS_SCHEDULED: {
        APPOINTMENT_STATUS_CONFIRMED,
        APPOINTMENT_STATUS_CANCELLED,
        APPOINTMENT_STATUS_NO_SHOW,
    },
    APPOINTMENT_STATUS_CONFIRMED: {
        APPOINTMENT_STATUS_COMPLETED,
        APPOINTMENT_STATUS_CANCELLED,
        APPOINTMENT_STATUS_NO_SHOW,
    },
}

# Statuses that can only be recorded once the appointment has started
STATUSES_REQUIRING_START = {APPOINTMENT_STATUS_COMPLETED, APPOINTMENT_STATUS_NO_SHOW}


def _status_change_failure(
    current_status: str,
    new_status: str,
    starts_at: datetime
) -> Optional[AllocationFailure]:
    """Check a non-cancelling status change; None when it may proceed."""
    if new_status not in APPOINTMENT_STATUSES:
        return AllocationFailure(
            AllocationErrorCode.INVALID_STATUS_TRANSITION,
            f"Unknown appointment status: {new_status}"
        )
    if current_status == new_status:
        return None

    if new_status not in ALLOWED_STATUS_TRANSITIONS.get(current_status, set()):
        return AllocationFailure(
            AllocationErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change appointment status from {current_status} to {new_status}"
        )

    if new_status in STATUSES_REQUIRING_START and utc_now() < starts_at:
        return AllocationFailure(
            AllocationErrorCode.INVALID_TIME_RANGE,
            f"Cannot mark an appointment as {new_status} before it starts"
        )
    return None


class AppointmentService:
    """Service class for appointment operations."""

    @staticmethod
    def create_appointment(
        db: Session,
        service_id: int,
        starts_at: datetime,
        patient_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> Union[Tuple[Appointment, AllocationPlan], AllocationFailure]:
        """
        Book an appointment.

        Plans the allocation under the lock scope and persists the appointment
        together with its allocation records in a single transaction.

        Args:
            db: Database session
            service_id: Service to book
            starts_at: Requested start (naive values are taken as UTC)
            patient_id: Optional patient reference
            notes: Optional notes

        Returns:
            (Appointment, AllocationPlan) on success, otherwise AllocationFailure

        Raises:
            SQLAlchemyError: On storage errors (the transaction is rolled back)
        """
        utc_start = ensure_utc(starts_at)
        assert utc_start is not None
        start_time = truncate_to_minute(utc_start)

        if start_time < utc_now():
            return AllocationFailure(
                AllocationErrorCode.INVALID_TIME_RANGE,
                "Cannot book an appointment in the past"
            )

        planner = AllocationPlanner.for_session(db)

        try:
            lock_for_service(planner.catalog, planner.ledger, service_id)
            result = planner.allocate(service_id, start_time)
            if isinstance(result, AllocationFailure):
                db.rollback()
                logger.info(f"Booking of service {service_id} at {start_time} rejected: {result.code.value}")
                return result

            appointment = Appointment(
                service_id=service_id,
                patient_id=patient_id,
                starts_at=result.starts_at,
                ends_at=result.ends_at,
                status=APPOINTMENT_STATUS_SCHEDULED,
                notes=notes,
            )
            db.add(appointment)
            db.flush()  # Assign appointment.id before writing allocations

            planner.ledger.replace(appointment.id, [], result.allocations)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Created appointment {appointment.id} for service {service_id} at {result.starts_at} "
            f"with professional {result.professional_id}"
        )
        return appointment, result

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        """Get an appointment with its allocation records loaded."""
        return db.query(Appointment).options(
            selectinload(Appointment.allocations)
        ).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def update_status(
        db: Session,
        appointment_id: int,
        new_status: str,
        notes: Optional[str] = None
    ) -> Union[Appointment, AllocationFailure]:
        """
        Apply a lifecycle transition.

        Cancellation is delegated to RescheduleCoordinator.cancel so the
        allocation records are removed in the same transaction. Setting the
        current status again is a no-op.

        Returns:
            Updated Appointment, or AllocationFailure (NOT_FOUND,
            INVALID_STATUS_TRANSITION, INVALID_TIME_RANGE)
        """
        if new_status not in APPOINTMENT_STATUSES:
            return AllocationFailure(
                AllocationErrorCode.INVALID_STATUS_TRANSITION,
                f"Unknown appointment status: {new_status}"
            )

        if new_status == APPOINTMENT_STATUS_CANCELLED:
            result = RescheduleCoordinator(db).cancel(appointment_id)
            if isinstance(result, Appointment) and notes is not None:
                result.notes = notes
                db.commit()
            return result

        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).with_for_update().first()
        if not appointment:
            db.rollback()
            return AllocationFailure(AllocationErrorCode.NOT_FOUND, f"Appointment {appointment_id} not found")

        failure = _status_change_failure(
            appointment.status, new_status, appointment.starts_at  # type: ignore[arg-type]
        )
        if failure is not None:
            db.rollback()
            return failure

        old_status = appointment.status
        appointment.status = new_status
        if notes is not None:
            appointment.notes = notes
        db.commit()

        if old_status != new_status:
            logger.info(f"Appointment {appointment_id} status changed from {old_status} to {new_status}")
        return appointment

    @staticmethod
    def update_appointment(
        db: Session,
        appointment_id: int,
        starts_at: Optional[datetime] = None,
        service_id: Optional[int] = None,
        status: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Union[Appointment, AllocationFailure]:
        """
        Update an appointment.

        A new start time or service triggers an atomic reschedule; a status
        change is checked before the move and applied after it; notes alone
        are a plain field update.

        Returns:
            Updated Appointment, or the first AllocationFailure encountered
        """
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            return AllocationFailure(AllocationErrorCode.NOT_FOUND, f"Appointment {appointment_id} not found")

        timing_changed = (
            (starts_at is not None and truncate_to_minute(ensure_utc(starts_at)) != appointment.starts_at)  # type: ignore[arg-type]
            or (service_id is not None and service_id != appointment.service_id)
        )

        if timing_changed and status is not None and status != APPOINTMENT_STATUS_CANCELLED:
            # Reject the combined update before anything moves
            new_start = (
                truncate_to_minute(ensure_utc(starts_at))  # type: ignore[arg-type]
                if starts_at is not None else appointment.starts_at
            )
            failure = _status_change_failure(appointment.status, status, new_start)  # type: ignore[arg-type]
            if failure is not None:
                logger.info(f"Update of appointment {appointment_id} rejected: {failure.code.value}")
                return failure

        if timing_changed:
            rescheduled = RescheduleCoordinator(db).reschedule(
                appointment_id,
                new_service_id=service_id,
                new_start_time=starts_at,
                notes=notes
            )
            if isinstance(rescheduled, AllocationFailure):
                return rescheduled
            notes = None

        if status is not None:
            return AppointmentService.update_status(db, appointment_id, status, notes=notes)

        if notes is not None:
            if appointment.status == APPOINTMENT_STATUS_CANCELLED:
                return AllocationFailure(
                    AllocationErrorCode.INVALID_STATUS_TRANSITION,
                    "Cannot edit a cancelled appointment"
                )
            appointment.notes = notes
            db.commit()

        db.refresh(appointment)
        return appointment
