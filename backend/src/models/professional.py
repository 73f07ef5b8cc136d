"""
Professional model representing clinical staff who deliver service phases.

A professional's capacity is fractional: the summed fraction of all phases
assigned to them must never exceed 1.0 at any instant.
"""

from datetime import datetime
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base, UTCDateTime


class Professional(Base):
    """Professional entity."""

    __tablename__ = "professionals"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the professional."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the professional."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive professionals are never assigned."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the professional was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the professional was last updated."""

    # Relationships
    schedules = relationship("ProfessionalSchedule", back_populates="professional", cascade="all, delete-orphan")
    """Default weekly duty intervals."""

    allocations = relationship("AppointmentAllocation", back_populates="professional")
    """Allocations assigned to this professional."""

    def __repr__(self) -> str:
        return f"<Professional(id={self.id}, name={self.full_name!r}, active={self.is_active})>"
