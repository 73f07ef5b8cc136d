"""
Shared type definitions for the clinic allocation backend.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.scheduling import (
    AllocationPlan,
    AllocationRecord,
    BlockingWindow,
    ContinuousBlock,
    DutyInterval,
    PhaseAllocation,
    PhaseSpec,
    ProfessionalInfo,
    ResourceInfo,
    ServiceSpec,
    SmartAvailability,
    TimeWindow,
)

__all__ = [
    "AllocationPlan",
    "AllocationRecord",
    "BlockingWindow",
    "ContinuousBlock",
    "DutyInterval",
    "PhaseAllocation",
    "PhaseSpec",
    "ProfessionalInfo",
    "ResourceInfo",
    "ServiceSpec",
    "SmartAvailability",
    "TimeWindow",
]
