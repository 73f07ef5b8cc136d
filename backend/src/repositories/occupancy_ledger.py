"""
Occupancy ledger: the authoritative store of allocation records.

All writes go through replace(), which swaps an appointment's allocation rows
inside the caller's transaction. Commit and rollback stay with the caller so
the appointment row and its allocations always change together.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.constants import APPOINTMENT_STATUS_CANCELLED
from core.errors import LedgerConflictError
from models import Appointment, AppointmentAllocation, PhysicalResource, Professional
from shared_types import AllocationRecord, PhaseAllocation, TimeWindow

logger = logging.getLogger(__name__)


class OccupancyLedger(ABC):
    """Read and replace allocation records."""

    @abstractmethod
    def overlapping(
        self,
        window: TimeWindow,
        professional_ids: Optional[Sequence[int]] = None,
        resource_ids: Optional[Sequence[int]] = None,
        exclude_appointment_id: Optional[int] = None
    ) -> List[AllocationRecord]:
        """
        Records of non-cancelled appointments overlapping the window.

        When professional_ids and/or resource_ids are given, only records held
        by one of those professionals or resources are returned.
        """
        pass

    @abstractmethod
    def records_for_appointment(self, appointment_id: int) -> List[AllocationRecord]:
        pass

    @abstractmethod
    def replace(
        self,
        appointment_id: int,
        old_records: Sequence[AllocationRecord],
        new_allocations: Sequence[PhaseAllocation]
    ) -> List[AllocationRecord]:
        """
        Delete exactly old_records and insert new_allocations for an appointment.

        Raises:
            LedgerConflictError: If the appointment's stored records no longer
                match old_records. Nothing is written in that case.
        """
        pass

    @abstractmethod
    def lock_scope(self, professional_ids: Iterable[int], resource_ids: Iterable[int]) -> None:
        """Lock the given professionals and resources until the transaction ends."""
        pass


def _to_record(row: AppointmentAllocation) -> AllocationRecord:
    return AllocationRecord(
        record_id=row.id,
        appointment_id=row.appointment_id,
        professional_id=row.professional_id,
        physical_resource_id=row.physical_resource_id,
        window=TimeWindow(row.starts_at, row.ends_at),
        fraction_consumed=row.fraction_consumed,
        service_phase_id=row.service_phase_id,
    )


class SqlOccupancyLedger(OccupancyLedger):
    """OccupancyLedger backed by the appointment_allocations table."""

    def __init__(self, db: Session):
        self.db = db

    def overlapping(
        self,
        window: TimeWindow,
        professional_ids: Optional[Sequence[int]] = None,
        resource_ids: Optional[Sequence[int]] = None,
        exclude_appointment_id: Optional[int] = None
    ) -> List[AllocationRecord]:
        query = self.db.query(AppointmentAllocation).join(
            Appointment, AppointmentAllocation.appointment_id == Appointment.id
        ).filter(
            Appointment.status != APPOINTMENT_STATUS_CANCELLED,
            AppointmentAllocation.starts_at < window.ends_at,
            AppointmentAllocation.ends_at > window.starts_at
        )

        owner_filters = []
        if professional_ids is not None:
            owner_filters.append(AppointmentAllocation.professional_id.in_(list(professional_ids)))
        if resource_ids is not None:
            owner_filters.append(AppointmentAllocation.physical_resource_id.in_(list(resource_ids)))
        if owner_filters:
            query = query.filter(or_(*owner_filters))

        if exclude_appointment_id is not None:
            query = query.filter(AppointmentAllocation.appointment_id != exclude_appointment_id)

        rows = query.order_by(AppointmentAllocation.starts_at, AppointmentAllocation.id).all()
        return [_to_record(row) for row in rows]

    def records_for_appointment(self, appointment_id: int) -> List[AllocationRecord]:
        rows = self.db.query(AppointmentAllocation).filter(
            AppointmentAllocation.appointment_id == appointment_id
        ).order_by(AppointmentAllocation.starts_at, AppointmentAllocation.id).all()
        return [_to_record(row) for row in rows]

    def replace(
        self,
        appointment_id: int,
        old_records: Sequence[AllocationRecord],
        new_allocations: Sequence[PhaseAllocation]
    ) -> List[AllocationRecord]:
        current_rows = self.db.query(AppointmentAllocation).filter(
            AppointmentAllocation.appointment_id == appointment_id
        ).with_for_update().all()

        expected_ids = {record.record_id for record in old_records}
        current_ids = {row.id for row in current_rows}
        if expected_ids != current_ids:
            logger.warning(
                f"Allocation records of appointment {appointment_id} changed concurrently: "
                f"expected {sorted(expected_ids)}, found {sorted(current_ids)}"
            )
            raise LedgerConflictError(
                f"Allocation records of appointment {appointment_id} were modified concurrently"
            )

        for row in current_rows:
            self.db.delete(row)

        new_rows = [
            AppointmentAllocation(
                appointment_id=appointment_id,
                service_phase_id=allocation.phase_id,
                professional_id=allocation.professional_id,
                physical_resource_id=allocation.physical_resource_id,
                starts_at=allocation.starts_at,
                ends_at=allocation.ends_at,
                fraction_consumed=allocation.fraction_consumed,
            )
            for allocation in new_allocations
        ]
        self.db.add_all(new_rows)
        self.db.flush()

        # Loaded collections on the appointment would still list the deleted rows
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is not None:
            self.db.expire(appointment, ["allocations"])

        logger.debug(
            f"Replaced {len(current_rows)} allocation(s) with {len(new_rows)} "
            f"for appointment {appointment_id}"
        )
        return [_to_record(row) for row in new_rows]

    def lock_scope(self, professional_ids: Iterable[int], resource_ids: Iterable[int]) -> None:
        professional_id_list = sorted(set(professional_ids))
        resource_id_list = sorted(set(resource_ids))

        # Lock order: professionals, then resources, each by ascending id
        if professional_id_list:
            self.db.query(Professional).filter(
                Professional.id.in_(professional_id_list)
            ).order_by(Professional.id).with_for_update().all()
        if resource_id_list:
            self.db.query(PhysicalResource).filter(
                PhysicalResource.id.in_(resource_id_list)
            ).order_by(PhysicalResource.id).with_for_update().all()
