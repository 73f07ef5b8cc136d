"""
Failure taxonomy for the allocation engine.

Domain failures (capacity, schedule, lookup) are returned as values so every
caller has to branch on them explicitly. Storage problems stay exceptions and
are reported as INTERNAL by the HTTP layer, never as "not available".
"""

from dataclasses import dataclass
from enum import Enum


class AllocationErrorCode(str, Enum):
    """Stable, machine-readable failure codes."""

    NOT_FOUND = "NOT_FOUND"
    CLINIC_BLOCKED = "CLINIC_BLOCKED"
    OUT_OF_SCHEDULE = "OUT_OF_SCHEDULE"
    PROFESSIONAL_BUSY = "PROFESSIONAL_BUSY"
    RESOURCE_BUSY = "RESOURCE_BUSY"
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class AllocationFailure:
    """A typed domain failure carrying exactly one taxonomy code."""

    code: AllocationErrorCode
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}


class LedgerConflictError(Exception):
    """Raised when allocation rows changed underneath an atomic replace."""

    pass
