"""
Catalog store: read-only access to services, professionals, duty schedules
and physical resources.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from models import PhysicalResource, Professional, ProfessionalSchedule, Service
from shared_types import DutyInterval, PhaseSpec, ProfessionalInfo, ResourceInfo, ServiceSpec

logger = logging.getLogger(__name__)


class CatalogStore(ABC):
    """Read-only catalog interface used by the allocation engine."""

    @abstractmethod
    def get_service(self, service_id: int) -> Optional[ServiceSpec]:
        """
        Get a service with its phases ordered by phase_order.

        Services without phase rows are returned with a single virtual phase
        built from the service-level fields. Returns None if the service does
        not exist or describes no phase at all.
        """
        pass

    @abstractmethod
    def list_active_professionals(self) -> List[ProfessionalInfo]:
        """Active professionals ordered by ascending id."""
        pass

    @abstractmethod
    def list_duty_intervals(self, professional_id: int, day_of_week: int) -> List[DutyInterval]:
        """Duty intervals of a professional for a weekday (0=Monday)."""
        pass

    @abstractmethod
    def list_active_resources(self, resource_type: str) -> List[ResourceInfo]:
        """Active physical resources of a type ordered by ascending id."""
        pass


class SqlCatalogStore(CatalogStore):
    """CatalogStore backed by the SQLAlchemy models."""

    def __init__(self, db: Session):
        self.db = db

    def get_service(self, service_id: int) -> Optional[ServiceSpec]:
        service = self.db.query(Service).options(
            selectinload(Service.phases)
        ).filter(Service.id == service_id).first()

        if not service:
            return None

        phases = tuple(
            PhaseSpec(
                phase_id=phase.id,
                phase_order=phase.phase_order,
                duration_minutes=phase.duration_minutes,
                requires_professional_fraction=phase.requires_professional_fraction,
                requires_resource_type=phase.requires_resource_type,
            )
            for phase in sorted(service.phases, key=lambda p: p.phase_order)
        )

        if not phases:
            if not service.duration_minutes:
                logger.warning(f"Service {service_id} has neither phases nor a duration")
                return None
            phases = (
                PhaseSpec(
                    phase_id=None,
                    phase_order=1,
                    duration_minutes=service.duration_minutes,
                    requires_professional_fraction=service.required_professional_fraction,
                    requires_resource_type=service.required_resource_type,
                ),
            )

        return ServiceSpec(
            service_id=service.id,
            name=service.name,
            is_active=service.is_active,
            phases=phases,
        )

    def list_active_professionals(self) -> List[ProfessionalInfo]:
        professionals = self.db.query(Professional).filter(
            Professional.is_active == True
        ).order_by(Professional.id).all()

        return [
            ProfessionalInfo(professional_id=p.id, full_name=p.full_name, is_active=p.is_active)
            for p in professionals
        ]

    def list_duty_intervals(self, professional_id: int, day_of_week: int) -> List[DutyInterval]:
        schedules = self.db.query(ProfessionalSchedule).filter(
            ProfessionalSchedule.professional_id == professional_id,
            ProfessionalSchedule.day_of_week == day_of_week
        ).order_by(ProfessionalSchedule.start_time).all()

        return [
            DutyInterval(
                professional_id=s.professional_id,
                day_of_week=s.day_of_week,
                start_time=s.start_time,
                end_time=s.end_time,
            )
            for s in schedules
        ]

    def list_active_resources(self, resource_type: str) -> List[ResourceInfo]:
        resources = self.db.query(PhysicalResource).filter(
            PhysicalResource.type == resource_type,
            PhysicalResource.is_active == True
        ).order_by(PhysicalResource.id).all()

        return [
            ResourceInfo(resource_id=r.id, name=r.name, type=r.type, is_active=r.is_active)
            for r in resources
        ]
