"""
Service phase model representing one sequential segment of a service.

Phases are laid out back to back: phase N+1 starts exactly when phase N ends.
Each phase consumes a fraction of one professional's capacity and optionally
one exclusive physical resource of a given type.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Integer, Float, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base, UTCDateTime


class ServicePhase(Base):
    """
    Service phase entity.

    Invariants enforced by the table:
    - phase_order is unique within a service
    - duration_minutes > 0
    - 0 < requires_professional_fraction <= 1
    """

    __tablename__ = "service_phases"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the phase."""

    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"), index=True)
    """Reference to the service this phase belongs to."""

    phase_order: Mapped[int] = mapped_column(Integer)
    """Position of the phase within the service (1-based, contiguous)."""

    duration_minutes: Mapped[int] = mapped_column(Integer)
    """Length of the phase in minutes."""

    requires_professional_fraction: Mapped[float] = mapped_column(Float)
    """Share of a professional's concurrent capacity this phase consumes."""

    requires_resource_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Resource type tag required during this phase, or None."""

    label: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional display label (e.g. "Chamber")."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the phase was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the phase was last updated."""

    # Relationships
    service = relationship("Service", back_populates="phases")
    """Relationship to the owning Service."""

    __table_args__ = (
        UniqueConstraint('service_id', 'phase_order', name='uq_service_phase_order'),
        CheckConstraint("duration_minutes > 0", name='check_phase_duration_positive'),
        CheckConstraint(
            "requires_professional_fraction > 0 AND requires_professional_fraction <= 1",
            name='check_phase_fraction_range'
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ServicePhase(id={self.id}, service_id={self.service_id}, order={self.phase_order}, "
            f"{self.duration_minutes}m, fraction={self.requires_professional_fraction}, "
            f"resource={self.requires_resource_type})>"
        )
