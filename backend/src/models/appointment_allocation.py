"""
Appointment allocation model: the allocation record of one appointment phase.

Tracks which professional (and optionally which physical resource) serves a
phase over its concrete [starts_at, ends_at) window. fraction_consumed is
copied from the phase at plan time so capacity sums never need a join.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import ForeignKey, Float, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime


class AppointmentAllocation(Base):
    """
    Appointment allocation entity.

    One row per (appointment, phase). All rows of an appointment share the
    same professional_id.
    """

    __tablename__ = "appointment_allocations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the allocation."""

    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"),
        index=True
    )
    """Reference to the appointment this allocation belongs to."""

    service_phase_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("service_phases.id", ondelete="SET NULL"),
        nullable=True
    )
    """Phase served by this allocation; NULL for the virtual phase of a simple service."""

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id", ondelete="RESTRICT"))
    """Professional assigned to the phase."""

    physical_resource_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("physical_resources.id", ondelete="RESTRICT"),
        nullable=True
    )
    """Physical resource held during the phase, or NULL."""

    starts_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """Phase start (inclusive)."""

    ends_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """Phase end (exclusive)."""

    fraction_consumed: Mapped[float] = mapped_column(Float)
    """Professional fraction consumed during the window."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the allocation was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the allocation was last updated."""

    # Relationships
    appointment = relationship("Appointment", back_populates="allocations")
    """Relationship to the owning Appointment."""

    professional = relationship("Professional", back_populates="allocations")
    """Relationship to the assigned Professional."""

    physical_resource = relationship("PhysicalResource", back_populates="allocations")
    """Relationship to the held PhysicalResource."""

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name='check_allocation_time_range'),
        CheckConstraint(
            "fraction_consumed > 0 AND fraction_consumed <= 1",
            name='check_allocation_fraction_range'
        ),
        Index('idx_allocations_professional_window', 'professional_id', 'starts_at', 'ends_at'),
        Index('idx_allocations_resource_window', 'physical_resource_id', 'starts_at', 'ends_at'),
    )

    def __repr__(self) -> str:
        return (
            f"<AppointmentAllocation(id={self.id}, appointment_id={self.appointment_id}, "
            f"professional_id={self.professional_id}, resource_id={self.physical_resource_id}, "
            f"{self.starts_at}-{self.ends_at}, fraction={self.fraction_consumed})>"
        )
