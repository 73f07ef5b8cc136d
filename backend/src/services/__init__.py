"""
Services package for the allocation engine.

This package contains the planner, slot search and the appointment
coordinators used by the API endpoints.
"""

from .working_hours_resolver import WorkingHoursResolver
from .allocation_planner import AllocationPlanner
from .slot_search import SlotSearch, SlotSequence
from .reschedule_coordinator import RescheduleCoordinator
from .appointment_service import AppointmentService

__all__ = [
    "WorkingHoursResolver",
    "AllocationPlanner",
    "SlotSearch",
    "SlotSequence",
    "RescheduleCoordinator",
    "AppointmentService",
]
