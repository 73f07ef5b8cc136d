"""
Professional schedule model for default weekly duty hours.

Each record is one working period for a day of the week, in clinic local
time. Several periods per day are allowed (e.g. 08:00-13:00 and 15:00-20:00).
"""

from datetime import time, datetime
from sqlalchemy import Time, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime


class ProfessionalSchedule(Base):
    """
    Model for storing a professional's duty hours by day of week.

    A phase is within duty only if it fits entirely inside one record of the
    matching weekday.
    """

    __tablename__ = "professional_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the schedule record."""

    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id", ondelete="CASCADE"))
    """Reference to the professional."""

    day_of_week: Mapped[int] = mapped_column()
    """Day of the week (0=Monday, 1=Tuesday, ..., 6=Sunday)."""

    start_time: Mapped[time] = mapped_column(Time)
    """Start of the duty period (clinic local time)."""

    end_time: Mapped[time] = mapped_column(Time)
    """End of the duty period (clinic local time)."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the schedule record was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the schedule record was last updated."""

    # Relationships
    professional = relationship("Professional", back_populates="schedules")
    """Relationship to the Professional entity."""

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name='check_schedule_day_of_week'),
        CheckConstraint("start_time < end_time", name='check_schedule_time_range'),
        Index('idx_professional_schedules_professional_day', 'professional_id', 'day_of_week'),
    )

    @property
    def day_name(self) -> str:
        """Get the day name for display."""
        days = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
        return days[self.day_of_week]

    def __repr__(self) -> str:
        return f"<ProfessionalSchedule(professional_id={self.professional_id}, day={self.day_name}, {self.start_time}-{self.end_time})>"
