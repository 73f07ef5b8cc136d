"""
Working hours resolver.

Decides whether a time window falls inside a professional's duty hours (or
the clinic's business hours) and is not blocked by a schedule exception.
Duty intervals are clinic local wall-clock times; windows are UTC instants.
"""

import logging
from typing import List, Optional

from core.config import CLINIC_LATEST_END_TIME, CLINIC_OPEN_TIME
from repositories import CatalogStore, ExceptionStore
from shared_types import DutyInterval, TimeWindow
from utils.datetime_utils import to_clinic_local

logger = logging.getLogger(__name__)


class WorkingHoursResolver:
    """Duty-hours and exception checks for professionals and the clinic."""

    def __init__(self, catalog: CatalogStore, exceptions: ExceptionStore):
        self.catalog = catalog
        self.exceptions = exceptions

    def is_within_duty(self, professional_id: Optional[int], window: TimeWindow) -> bool:
        """
        Check whether a window is workable.

        Args:
            professional_id: Professional to check, or None for the clinic itself
            window: Window to check

        Returns:
            For a professional: True if the window lies inside one of their duty
            intervals for that weekday and no professional or clinic exception
            intersects it. For the clinic: True if the window lies inside
            business hours and no clinic exception intersects it.
        """
        if self.is_clinic_blocked(window):
            return False

        if professional_id is None:
            return self._within_clinic_hours(window)

        if not self.fits_duty_interval(professional_id, window):
            return False

        return not self.is_professional_blocked(professional_id, window)

    def fits_duty_interval(self, professional_id: int, window: TimeWindow) -> bool:
        """True if the window fits entirely inside one duty interval of its local weekday."""
        local_start = to_clinic_local(window.starts_at)
        local_end = to_clinic_local(window.ends_at)

        # A window crossing local midnight never fits a single-day interval
        if local_end.date() != local_start.date():
            return False

        intervals = self.catalog.list_duty_intervals(professional_id, local_start.weekday())
        return _fits_any(intervals, local_start.time(), local_end.time())

    def is_clinic_blocked(self, window: TimeWindow) -> bool:
        return bool(self.exceptions.clinic_blocks(window))

    def is_professional_blocked(self, professional_id: int, window: TimeWindow) -> bool:
        return bool(self.exceptions.professional_blocks(professional_id, window))

    def _within_clinic_hours(self, window: TimeWindow) -> bool:
        local_start = to_clinic_local(window.starts_at)
        local_end = to_clinic_local(window.ends_at)
        if local_end.date() != local_start.date():
            return False
        return CLINIC_OPEN_TIME <= local_start.time() and local_end.time() <= CLINIC_LATEST_END_TIME


def _fits_any(intervals: List[DutyInterval], start, end) -> bool:
    for interval in intervals:
        if interval.start_time <= start and end <= interval.end_time:
            return True
    return False
