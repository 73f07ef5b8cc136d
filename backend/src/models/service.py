"""
Service model representing a bookable clinical service.

A service is made of one or more sequential phases (ServicePhase). Simple
services may skip phase rows entirely and describe their single phase with the
service-level duration, professional fraction and resource type fields.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Boolean, Integer, Float, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base, UTCDateTime


class Service(Base):
    """
    Service entity representing a treatment offered by the clinic.

    Examples: "Hyperbaric session", "Kinesiology + chamber"
    """

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the service."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the service."""

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Optional description of the service."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive services cannot be booked."""

    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Duration of the virtual phase used when the service has no phase rows."""

    required_professional_fraction: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    """Professional fraction of the virtual phase."""

    required_resource_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Resource type tag of the virtual phase (e.g. "box", "chamber"), or None."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the service was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the service was last updated."""

    # Relationships
    phases = relationship(
        "ServicePhase",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServicePhase.phase_order",
    )
    """Ordered phases of this service."""

    __table_args__ = (
        CheckConstraint(
            "duration_minutes IS NULL OR duration_minutes > 0",
            name='check_service_duration_positive'
        ),
        CheckConstraint(
            "required_professional_fraction > 0 AND required_professional_fraction <= 1",
            name='check_service_fraction_range'
        ),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name!r}, active={self.is_active})>"
