"""
Schedule exception model representing blocking windows.

An exception blocks exactly one scope:
- the whole clinic (professional_id and physical_resource_id both NULL)
- one professional (professional_id set)
- one physical resource (physical_resource_id set)
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_STRING_LENGTH
from core.database import Base, UTCDateTime


class ScheduleException(Base):
    """Blocking window over [starts_at, ends_at)."""

    __tablename__ = "schedule_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the exception."""

    professional_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True
    )
    """Blocked professional, or NULL."""

    physical_resource_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("physical_resources.id", ondelete="CASCADE"), nullable=True
    )
    """Blocked physical resource, or NULL."""

    starts_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """Start of the blocked window (inclusive)."""

    ends_at: Mapped[datetime] = mapped_column(UTCDateTime)
    """End of the blocked window (exclusive)."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional reason (holiday, leave, maintenance)."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the exception was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the exception was last updated."""

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name='check_exception_time_range'),
        CheckConstraint(
            "professional_id IS NULL OR physical_resource_id IS NULL",
            name='check_exception_single_scope'
        ),
        Index('idx_schedule_exceptions_window', 'starts_at', 'ends_at'),
    )

    @property
    def is_clinic_wide(self) -> bool:
        """True if this exception blocks the whole clinic."""
        return self.professional_id is None and self.physical_resource_id is None

    def __repr__(self) -> str:
        return (
            f"<ScheduleException(id={self.id}, professional_id={self.professional_id}, "
            f"resource_id={self.physical_resource_id}, {self.starts_at}-{self.ends_at})>"
        )
