"""
Reschedule coordinator.

Moves or cancels a booked appointment. Every commit path runs
lock -> plan -> ledger replace -> appointment update -> commit in one session
transaction; on any failure the transaction is rolled back and the previous
allocation records stay untouched.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

from core.constants import (
    APPOINTMENT_STATUS_CANCELLED,
    TERMINAL_APPOINTMENT_STATUSES,
)
from core.errors import AllocationErrorCode, AllocationFailure
from models import Appointment
from repositories import CatalogStore, OccupancyLedger
from services.allocation_planner import AllocationPlanner
from shared_types import AllocationPlan
from utils.datetime_utils import ensure_utc, truncate_to_minute, utc_now

logger = logging.getLogger(__name__)


def lock_for_service(catalog: CatalogStore, ledger: OccupancyLedger, service_id: int) -> None:
    """
    Lock every professional and resource a plan for this service could touch.

    Held until the surrounding transaction commits or rolls back, so a
    concurrent booking cannot pass the same capacity check.
    """
    service = catalog.get_service(service_id)
    if service is None:
        return

    professional_ids = [p.professional_id for p in catalog.list_active_professionals()]
    resource_types = {phase.requires_resource_type for phase in service.phases if phase.requires_resource_type}
    resource_ids = [
        resource.resource_id
        for resource_type in sorted(resource_types)
        for resource in catalog.list_active_resources(resource_type)
    ]
    ledger.lock_scope(professional_ids, resource_ids)


class RescheduleCoordinator:
    """Atomic reschedule and cancellation of appointments."""

    def __init__(self, db: Session, planner: Optional[AllocationPlanner] = None):
        self.db = db
        self.planner = planner or AllocationPlanner.for_session(db)

    def _get_locked_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).with_for_update().first()

    def reschedule(
        self,
        appointment_id: int,
        new_service_id: Optional[int] = None,
        new_start_time: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Union[AllocationPlan, AllocationFailure]:
        """
        Move an appointment to a new start time and/or service.

        The appointment's own records are excluded from capacity and occupancy
        accounting, so it may move within its own footprint.

        Args:
            appointment_id: Appointment to move
            new_service_id: New service, or None to keep the current one
            new_start_time: New start, or None to keep the current one
            notes: Replacement notes, or None to keep the current ones

        Returns:
            The committed AllocationPlan, or AllocationFailure. Nothing is
            written when a failure is returned.

        Raises:
            LedgerConflictError: If the allocation rows changed concurrently
            SQLAlchemyError: On storage errors (the transaction is rolled back)
        """
        appointment = self._get_locked_appointment(appointment_id)
        if not appointment:
            self.db.rollback()
            return AllocationFailure(AllocationErrorCode.NOT_FOUND, f"Appointment {appointment_id} not found")

        if appointment.status in TERMINAL_APPOINTMENT_STATUSES:
            self.db.rollback()
            return AllocationFailure(
                AllocationErrorCode.INVALID_STATUS_TRANSITION,
                f"Cannot reschedule a {appointment.status} appointment"
            )

        service_id = new_service_id if new_service_id is not None else appointment.service_id
        if new_start_time is not None:
            utc_start = ensure_utc(new_start_time)
            assert utc_start is not None
            start_time = truncate_to_minute(utc_start)
        else:
            start_time = appointment.starts_at

        if start_time < utc_now():
            self.db.rollback()
            return AllocationFailure(
                AllocationErrorCode.INVALID_TIME_RANGE,
                "Cannot reschedule an appointment into the past"
            )

        try:
            lock_for_service(self.planner.catalog, self.planner.ledger, service_id)
            result = self.planner.allocate(service_id, start_time, exclude_appointment_id=appointment.id)
            if isinstance(result, AllocationFailure):
                self.db.rollback()
                logger.info(f"Reschedule of appointment {appointment_id} rejected: {result.code.value}")
                return result

            old_records = self.planner.ledger.records_for_appointment(appointment.id)
            self.planner.ledger.replace(appointment.id, old_records, result.allocations)

            appointment.service_id = service_id
            appointment.starts_at = result.starts_at
            appointment.ends_at = result.ends_at
            if notes is not None:
                appointment.notes = notes

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Rescheduled appointment {appointment_id} to {result.starts_at} "
            f"(service {service_id}, professional {result.professional_id})"
        )
        return result

    def cancel(self, appointment_id: int) -> Union[Appointment, AllocationFailure]:
        """
        Cancel an appointment and free its capacity.

        Idempotent: cancelling an already-cancelled appointment returns it
        unchanged.

        Returns:
            The cancelled Appointment, or AllocationFailure (NOT_FOUND,
            INVALID_STATUS_TRANSITION for completed / no-show appointments)
        """
        appointment = self._get_locked_appointment(appointment_id)
        if not appointment:
            self.db.rollback()
            return AllocationFailure(AllocationErrorCode.NOT_FOUND, f"Appointment {appointment_id} not found")

        if appointment.status == APPOINTMENT_STATUS_CANCELLED:
            logger.info(f"Appointment {appointment_id} already cancelled, skipping")
            self.db.rollback()
            return appointment

        if appointment.status in TERMINAL_APPOINTMENT_STATUSES:
            self.db.rollback()
            return AllocationFailure(
                AllocationErrorCode.INVALID_STATUS_TRANSITION,
                f"Cannot cancel a {appointment.status} appointment"
            )

        try:
            old_records = self.planner.ledger.records_for_appointment(appointment.id)
            self.planner.ledger.replace(appointment.id, old_records, [])
            appointment.status = APPOINTMENT_STATUS_CANCELLED
            appointment.cancelled_at = utc_now()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Cancelled appointment {appointment_id}, freed {len(old_records)} allocation(s)")
        return appointment
