"""
Shared types for the allocation engine.

Plain frozen dataclasses returned by the repository interfaces and consumed by
the planner, slot search and coordinator. Keeping them free of ORM state lets
the engine run against in-memory stores as well as the database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open interval [starts_at, ends_at) of timezone-aware instants.

    Invariant: starts_at must be before ends_at.
    """
    starts_at: datetime
    ends_at: datetime

    def __post_init__(self) -> None:
        if self.starts_at >= self.ends_at:
            raise ValueError(f"Window start {self.starts_at} must be before end {self.ends_at}")

    def overlaps(self, other: "TimeWindow") -> bool:
        """Touching boundaries do not overlap."""
        return self.starts_at < other.ends_at and other.starts_at < self.ends_at

    @property
    def duration_minutes(self) -> int:
        return int((self.ends_at - self.starts_at).total_seconds() // 60)


@dataclass(frozen=True)
class PhaseSpec:
    """One phase of a service as seen by the planner."""
    phase_id: Optional[int]  # None for the virtual phase of a simple service
    phase_order: int
    duration_minutes: int
    requires_professional_fraction: float
    requires_resource_type: Optional[str] = None


@dataclass(frozen=True)
class ServiceSpec:
    """A bookable service with its phases ordered by phase_order."""
    service_id: int
    name: str
    is_active: bool
    phases: Tuple[PhaseSpec, ...]

    @property
    def total_duration_minutes(self) -> int:
        return sum(phase.duration_minutes for phase in self.phases)


@dataclass(frozen=True)
class ProfessionalInfo:
    professional_id: int
    full_name: str
    is_active: bool = True


@dataclass(frozen=True)
class ResourceInfo:
    resource_id: int
    name: str
    type: str
    is_active: bool = True


@dataclass(frozen=True)
class DutyInterval:
    """One duty period of a professional's weekly schedule (clinic local time)."""
    professional_id: int
    day_of_week: int  # 0=Monday, 6=Sunday
    start_time: time
    end_time: time


@dataclass(frozen=True)
class BlockingWindow:
    """
    A schedule exception.

    Both owner ids None means the whole clinic is blocked.
    """
    window: TimeWindow
    professional_id: Optional[int] = None
    physical_resource_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_clinic_wide(self) -> bool:
        return self.professional_id is None and self.physical_resource_id is None


@dataclass(frozen=True)
class AllocationRecord:
    """A persisted allocation as read from the ledger."""
    record_id: int
    appointment_id: int
    professional_id: int
    physical_resource_id: Optional[int]
    window: TimeWindow
    fraction_consumed: float
    service_phase_id: Optional[int] = None


@dataclass(frozen=True)
class PhaseAllocation:
    """One planned (not yet persisted) phase assignment."""
    phase_id: Optional[int]
    professional_id: int
    physical_resource_id: Optional[int]
    starts_at: datetime
    ends_at: datetime
    fraction_consumed: float

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.starts_at, self.ends_at)


@dataclass(frozen=True)
class AllocationPlan:
    """The full assignment for one appointment request."""
    service_id: int
    starts_at: datetime
    ends_at: datetime
    professional_id: int
    allocations: Tuple[PhaseAllocation, ...]

    def to_dict(self) -> Dict[str, object]:
        from utils.datetime_utils import format_utc_iso

        return {
            "service_id": self.service_id,
            "starts_at": format_utc_iso(self.starts_at),
            "ends_at": format_utc_iso(self.ends_at),
            "professional_id": self.professional_id,
            "allocations": [
                {
                    "phase_id": allocation.phase_id,
                    "professional_id": allocation.professional_id,
                    "physical_resource_id": allocation.physical_resource_id,
                    "starts_at": format_utc_iso(allocation.starts_at),
                    "ends_at": format_utc_iso(allocation.ends_at),
                }
                for allocation in self.allocations
            ],
        }


@dataclass(frozen=True)
class ContinuousBlock:
    """A maximal run of consecutive available start times."""
    start_time: str  # Clinic local "HH:MM"
    end_time: str  # Clinic local "HH:MM", last start + service duration


@dataclass
class SmartAvailability:
    """Result of a smart (lookahead) slot search."""
    requested_date: date
    actual_date_searched: date
    raw_slots: List[str]
    morning: List[str] = field(default_factory=list)
    afternoon: List[str] = field(default_factory=list)
    evening: List[str] = field(default_factory=list)
    continuous_blocks: List[ContinuousBlock] = field(default_factory=list)
    hint: str = ""

    @property
    def shifted(self) -> bool:
        return self.actual_date_searched != self.requested_date
