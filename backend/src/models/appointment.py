"""
Appointment model representing a booked service.

An appointment groups the allocation records produced for one booking, one
per service phase. Its status follows the lifecycle
scheduled -> confirmed -> completed, with cancelled / no_show reachable from
any non-terminal state.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Index, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import APPOINTMENT_STATUS_SCHEDULED, MAX_NOTES_LENGTH
from core.database import Base, UTCDateTime


class Appointment(Base):
    """
    Appointment entity.

    starts_at / ends_at span all phases. The per-phase professional and
    resource assignments live in AppointmentAllocation rows, which exist only
    while the appointment is not cancelled.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"))
    """Reference to the booked service."""

    patient_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Opaque reference to the patient in the external patient store."""

    starts_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """Start of the first phase."""

    ends_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """End of the last phase (exclusive)."""

    status: Mapped[str] = mapped_column(String(50), default=APPOINTMENT_STATUS_SCHEDULED)
    """Valid values: 'scheduled', 'confirmed', 'completed', 'cancelled', 'no_show'."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Optional free-text notes."""

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    """Timestamp when the appointment was cancelled (if applicable)."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the appointment was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the appointment was last updated."""

    # Relationships
    service = relationship("Service")
    """Relationship to the booked Service."""

    allocations = relationship(
        "AppointmentAllocation",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentAllocation.starts_at",
    )
    """Per-phase allocation records."""

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name='check_valid_appointment_status'
        ),
        CheckConstraint("starts_at < ends_at", name='check_appointment_time_range'),
        Index('idx_appointments_status', 'status'),
        Index('idx_appointments_starts_at', 'starts_at'),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, service_id={self.service_id}, status={self.status}, {self.starts_at}-{self.ends_at})>"
