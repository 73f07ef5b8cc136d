"""
Exception store: blocking windows for the clinic, professionals and
physical resources.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from sqlalchemy.orm import Session

from models import ScheduleException
from shared_types import BlockingWindow, TimeWindow


class ExceptionStore(ABC):
    """Read access to schedule exceptions overlapping a window."""

    @abstractmethod
    def clinic_blocks(self, window: TimeWindow) -> List[BlockingWindow]:
        """Clinic-wide exceptions overlapping the window."""
        pass

    @abstractmethod
    def professional_blocks(self, professional_id: int, window: TimeWindow) -> List[BlockingWindow]:
        """Exceptions of one professional overlapping the window."""
        pass

    @abstractmethod
    def resource_blocks(self, resource_ids: Sequence[int], window: TimeWindow) -> List[BlockingWindow]:
        """Exceptions of the given physical resources overlapping the window."""
        pass


def _to_blocking_window(exception: ScheduleException) -> BlockingWindow:
    return BlockingWindow(
        window=TimeWindow(exception.starts_at, exception.ends_at),
        professional_id=exception.professional_id,
        physical_resource_id=exception.physical_resource_id,
        reason=exception.reason,
    )


class SqlExceptionStore(ExceptionStore):
    """ExceptionStore backed by the schedule_exceptions table."""

    def __init__(self, db: Session):
        self.db = db

    def _overlapping_query(self, window: TimeWindow):
        return self.db.query(ScheduleException).filter(
            ScheduleException.starts_at < window.ends_at,
            ScheduleException.ends_at > window.starts_at
        )

    def clinic_blocks(self, window: TimeWindow) -> List[BlockingWindow]:
        exceptions = self._overlapping_query(window).filter(
            ScheduleException.professional_id.is_(None),
            ScheduleException.physical_resource_id.is_(None)
        ).order_by(ScheduleException.starts_at).all()
        return [_to_blocking_window(e) for e in exceptions]

    def professional_blocks(self, professional_id: int, window: TimeWindow) -> List[BlockingWindow]:
        exceptions = self._overlapping_query(window).filter(
            ScheduleException.professional_id == professional_id
        ).order_by(ScheduleException.starts_at).all()
        return [_to_blocking_window(e) for e in exceptions]

    def resource_blocks(self, resource_ids: Sequence[int], window: TimeWindow) -> List[BlockingWindow]:
        if not resource_ids:
            return []
        exceptions = self._overlapping_query(window).filter(
            ScheduleException.physical_resource_id.in_(list(resource_ids))
        ).order_by(ScheduleException.starts_at).all()
        return [_to_blocking_window(e) for e in exceptions]
