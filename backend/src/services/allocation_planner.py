"""
Allocation planner for multiphase services.

Given a service and a start time, the planner lays the service's phases out
back to back and looks for one professional who can carry every phase plus a
free physical resource for every phase that needs one. It only reads from the
stores; persisting a plan is the caller's job.

Selection is first-match and deterministic: professionals and resources are
scanned in ascending id order, so an unchanged snapshot always yields the same
plan or the same failure.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from core.constants import FRACTION_EPSILON, FULL_CAPACITY
from core.errors import AllocationErrorCode, AllocationFailure
from repositories import (
    CatalogStore,
    ExceptionStore,
    OccupancyLedger,
    SqlCatalogStore,
    SqlExceptionStore,
    SqlOccupancyLedger,
)
from services.working_hours_resolver import WorkingHoursResolver
from shared_types import (
    AllocationPlan,
    AllocationRecord,
    PhaseAllocation,
    PhaseSpec,
    ProfessionalInfo,
    ServiceSpec,
    TimeWindow,
)
from utils.datetime_utils import ensure_utc, truncate_to_minute

logger = logging.getLogger(__name__)

PlannedPhase = Tuple[PhaseSpec, TimeWindow]


def layout_phases(service: ServiceSpec, start_time: datetime) -> List[PlannedPhase]:
    """Lay phases out sequentially: phase i+1 starts exactly when phase i ends."""
    planned: List[PlannedPhase] = []
    current = start_time
    for phase in service.phases:
        phase_end = current + timedelta(minutes=phase.duration_minutes)
        planned.append((phase, TimeWindow(current, phase_end)))
        current = phase_end
    return planned


def peak_load(records: Sequence[AllocationRecord], window: TimeWindow) -> float:
    """
    Highest summed fraction held at any instant inside the window.

    Records are clipped to the window and swept in time order. Ends sort
    before starts at the same instant because windows are half-open.
    """
    events: List[Tuple[datetime, int, float]] = []
    for record in records:
        if not record.window.overlaps(window):
            continue
        starts_at = max(record.window.starts_at, window.starts_at)
        ends_at = min(record.window.ends_at, window.ends_at)
        events.append((starts_at, 1, record.fraction_consumed))
        events.append((ends_at, 0, -record.fraction_consumed))

    events.sort(key=lambda event: (event[0], event[1]))

    load = 0.0
    peak = 0.0
    for _, _, delta in events:
        load += delta
        peak = max(peak, load)
    return peak


class AllocationPlanner:
    """Plans professional and resource assignments for one appointment request."""

    def __init__(self, catalog: CatalogStore, exceptions: ExceptionStore, ledger: OccupancyLedger):
        self.catalog = catalog
        self.exceptions = exceptions
        self.ledger = ledger
        self.resolver = WorkingHoursResolver(catalog, exceptions)

    @classmethod
    def for_session(cls, db: Session) -> "AllocationPlanner":
        """Build a planner reading from the given database session."""
        return cls(SqlCatalogStore(db), SqlExceptionStore(db), SqlOccupancyLedger(db))

    def allocate(
        self,
        service_id: int,
        start_time: datetime,
        exclude_appointment_id: Optional[int] = None
    ) -> Union[AllocationPlan, AllocationFailure]:
        """
        Compute an allocation plan for a service starting at start_time.

        Args:
            service_id: Service to book
            start_time: Requested start instant; naive values are taken as UTC.
                Seconds and microseconds are dropped.
            exclude_appointment_id: Appointment whose own records are ignored
                in capacity and occupancy accounting (used when rescheduling)

        Returns:
            AllocationPlan on success, otherwise AllocationFailure with one of
            NOT_FOUND, CLINIC_BLOCKED, OUT_OF_SCHEDULE, PROFESSIONAL_BUSY or
            RESOURCE_BUSY.
        """
        service = self.catalog.get_service(service_id)
        if service is None or not service.is_active or not service.phases:
            return AllocationFailure(AllocationErrorCode.NOT_FOUND, f"Service {service_id} not found")

        utc_start = ensure_utc(start_time)
        assert utc_start is not None
        starts_at = truncate_to_minute(utc_start)

        planned = layout_phases(service, starts_at)
        span = TimeWindow(planned[0][1].starts_at, planned[-1][1].ends_at)

        if self.resolver.is_clinic_blocked(span):
            logger.debug(f"Service {service_id} at {starts_at}: clinic blocked")
            return AllocationFailure(
                AllocationErrorCode.CLINIC_BLOCKED,
                "The clinic is closed during the requested time"
            )

        eligible = self._eligible_professionals(planned)
        if not eligible:
            logger.debug(f"Service {service_id} at {starts_at}: no professional on duty")
            return AllocationFailure(
                AllocationErrorCode.OUT_OF_SCHEDULE,
                "No professional is on duty for the requested time"
            )

        professional_id = self._select_professional(eligible, planned, exclude_appointment_id)
        if professional_id is None:
            logger.debug(f"Service {service_id} at {starts_at}: all eligible professionals at capacity")
            return AllocationFailure(
                AllocationErrorCode.PROFESSIONAL_BUSY,
                "No professional has available capacity"
            )

        allocations: List[PhaseAllocation] = []
        for phase, window in planned:
            resource_id: Optional[int] = None
            if phase.requires_resource_type:
                resource_id = self._select_resource(phase.requires_resource_type, window, exclude_appointment_id)
                if resource_id is None:
                    logger.debug(
                        f"Service {service_id} at {starts_at}: no {phase.requires_resource_type} "
                        f"for phase {phase.phase_order}"
                    )
                    return AllocationFailure(
                        AllocationErrorCode.RESOURCE_BUSY,
                        f"No {phase.requires_resource_type} available at this specific time frame"
                    )

            allocations.append(PhaseAllocation(
                phase_id=phase.phase_id,
                professional_id=professional_id,
                physical_resource_id=resource_id,
                starts_at=window.starts_at,
                ends_at=window.ends_at,
                fraction_consumed=phase.requires_professional_fraction,
            ))

        return AllocationPlan(
            service_id=service.service_id,
            starts_at=span.starts_at,
            ends_at=span.ends_at,
            professional_id=professional_id,
            allocations=tuple(allocations),
        )

    def _eligible_professionals(self, planned: List[PlannedPhase]) -> List[ProfessionalInfo]:
        eligible: List[ProfessionalInfo] = []
        for professional in self.catalog.list_active_professionals():
            on_duty = all(
                self.resolver.fits_duty_interval(professional.professional_id, window)
                and not self.resolver.is_professional_blocked(professional.professional_id, window)
                for _, window in planned
            )
            if on_duty:
                eligible.append(professional)
        return sorted(eligible, key=lambda p: p.professional_id)

    def _select_professional(
        self,
        eligible: List[ProfessionalInfo],
        planned: List[PlannedPhase],
        exclude_appointment_id: Optional[int]
    ) -> Optional[int]:
        for professional in eligible:
            if all(
                self._has_capacity(professional.professional_id, phase, window, exclude_appointment_id)
                for phase, window in planned
            ):
                return professional.professional_id
        return None

    def _has_capacity(
        self,
        professional_id: int,
        phase: PhaseSpec,
        window: TimeWindow,
        exclude_appointment_id: Optional[int]
    ) -> bool:
        records = self.ledger.overlapping(
            window,
            professional_ids=[professional_id],
            exclude_appointment_id=exclude_appointment_id
        )
        existing = peak_load(records, window)
        return existing + phase.requires_professional_fraction <= FULL_CAPACITY + FRACTION_EPSILON

    def _select_resource(
        self,
        resource_type: str,
        window: TimeWindow,
        exclude_appointment_id: Optional[int]
    ) -> Optional[int]:
        resources = sorted(self.catalog.list_active_resources(resource_type), key=lambda r: r.resource_id)
        if not resources:
            return None

        resource_ids = [r.resource_id for r in resources]
        occupied = {
            record.physical_resource_id
            for record in self.ledger.overlapping(
                window,
                resource_ids=resource_ids,
                exclude_appointment_id=exclude_appointment_id
            )
        }
        blocked = {
            block.physical_resource_id
            for block in self.exceptions.resource_blocks(resource_ids, window)
        }

        for resource_id in resource_ids:
            if resource_id not in occupied and resource_id not in blocked:
                return resource_id
        return None
