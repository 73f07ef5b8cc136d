"""
Physical resource model representing exclusively bookable assets.

Physical resources (treatment boxes, chambers) are never shared: at most one
active allocation may hold a resource at any instant.
"""

from datetime import datetime
from sqlalchemy import String, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base, UTCDateTime


class PhysicalResource(Base):
    """
    Physical resource entity.

    Examples: "Box 1" (type "box"), "Chamber A" (type "chamber")
    """

    __tablename__ = "physical_resources"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the resource."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Name of the resource. Must be unique within its type."""

    type: Mapped[str] = mapped_column(String(50), index=True)
    """Resource type tag matched against ServicePhase.requires_resource_type."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive resources are never allocated."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the resource was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    """Timestamp when the resource was last updated."""

    # Relationships
    allocations = relationship("AppointmentAllocation", back_populates="physical_resource")
    """Allocations currently holding this resource."""

    __table_args__ = (
        UniqueConstraint('type', 'name', name='uq_physical_resource_type_name'),
    )

    def __repr__(self) -> str:
        return f"<PhysicalResource(id={self.id}, name={self.name!r}, type={self.type}, active={self.is_active})>"
