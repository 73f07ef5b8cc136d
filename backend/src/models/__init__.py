# Package initialization
# Import all models to ensure relationships are properly established
from .service import Service
from .service_phase import ServicePhase
from .physical_resource import PhysicalResource
from .professional import Professional
from .professional_schedule import ProfessionalSchedule
from .schedule_exception import ScheduleException
from .appointment import Appointment
from .appointment_allocation import AppointmentAllocation

__all__ = [
    "Service",
    "ServicePhase",
    "PhysicalResource",
    "Professional",
    "ProfessionalSchedule",
    "ScheduleException",
    "Appointment",
    "AppointmentAllocation",
]
