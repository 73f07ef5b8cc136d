"""
Slot search.

Enumerates bookable start times for a service on a day by running the
planner in dry-run mode at every step between opening and closing time, and
offers a smart variant that looks ahead a few days when a date is full.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from core.config import (
    CLINIC_CLOSE_TIME,
    CLINIC_LATEST_END_TIME,
    CLINIC_OPEN_TIME,
    SLOT_STEP_MINUTES,
    SMART_SEARCH_MAX_DAYS,
    SMART_SEARCH_MIN_SLOTS,
)
from core.constants import AFTERNOON_END_HOUR, MORNING_END_HOUR
from services.allocation_planner import AllocationPlanner
from services.availability_hints import smart_search_hint
from shared_types import AllocationPlan, ContinuousBlock, SmartAvailability
from utils.datetime_utils import (
    clinic_datetime,
    format_clinic_clock,
    format_utc_iso,
    parse_datetime_string_to_utc,
    to_clinic_local,
    utc_now,
)

logger = logging.getLogger(__name__)

SlotValue = Union[str, datetime]


class SlotSequence:
    """
    Lazy, finite sequence of available start times for one service and day.

    Each iteration re-runs the planner from the first candidate, so the
    sequence can be consumed any number of times and always reflects the
    current ledger. Start times already in the past are never offered.
    """

    def __init__(self, planner: AllocationPlanner, service_id: int, day: date):
        self.planner = planner
        self.service_id = service_id
        self.day = day

    def __iter__(self) -> Iterator[str]:
        latest_end = clinic_datetime(self.day, CLINIC_LATEST_END_TIME)
        now = utc_now()
        for candidate in candidate_start_times(self.day):
            if candidate < now:
                continue
            result = self.planner.allocate(self.service_id, candidate)
            if isinstance(result, AllocationPlan) and result.ends_at <= latest_end:
                yield format_utc_iso(candidate)

    def __repr__(self) -> str:
        return f"<SlotSequence(service_id={self.service_id}, day={self.day})>"


def candidate_start_times(day: date, step_minutes: int = SLOT_STEP_MINUTES) -> Iterator[datetime]:
    """UTC candidates from opening time while local time is before closing time."""
    current = clinic_datetime(day, CLINIC_OPEN_TIME)
    close = clinic_datetime(day, CLINIC_CLOSE_TIME)
    step = timedelta(minutes=step_minutes)
    while current < close:
        yield current
        current += step


def _as_datetime(slot: SlotValue) -> datetime:
    if isinstance(slot, datetime):
        return slot
    return parse_datetime_string_to_utc(slot)


def group_continuous_blocks(
    slots: Sequence[SlotValue],
    duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES
) -> List[ContinuousBlock]:
    """
    Group sorted slots into maximal runs of consecutive start times.

    Two slots are consecutive when exactly one step apart. A block ends at its
    last start plus the service duration. Times are clinic local "HH:MM".
    """
    if not slots:
        return []

    starts = [_as_datetime(slot) for slot in slots]
    step = timedelta(minutes=step_minutes)
    duration = timedelta(minutes=duration_minutes)

    blocks: List[ContinuousBlock] = []
    block_start = starts[0]
    previous = starts[0]
    for current in starts[1:]:
        if current - previous != step:
            blocks.append(ContinuousBlock(format_clinic_clock(block_start), format_clinic_clock(previous + duration)))
            block_start = current
        previous = current
    blocks.append(ContinuousBlock(format_clinic_clock(block_start), format_clinic_clock(previous + duration)))
    return blocks


def group_by_period(slots: Sequence[str]) -> Tuple[List[str], List[str], List[str]]:
    """Split slots into morning, afternoon and evening by clinic local hour."""
    morning: List[str] = []
    afternoon: List[str] = []
    evening: List[str] = []
    for slot in slots:
        hour = to_clinic_local(parse_datetime_string_to_utc(slot)).hour
        if hour < MORNING_END_HOUR:
            morning.append(slot)
        elif hour < AFTERNOON_END_HOUR:
            afternoon.append(slot)
        else:
            evening.append(slot)
    return morning, afternoon, evening


class SlotSearch:
    """Day and lookahead availability search built on the planner."""

    def __init__(self, planner: AllocationPlanner):
        self.planner = planner

    @classmethod
    def for_session(cls, db: Session) -> "SlotSearch":
        return cls(AllocationPlanner.for_session(db))

    def enumerate(self, service_id: int, day: date) -> SlotSequence:
        return SlotSequence(self.planner, service_id, day)

    def smart_search(
        self,
        service_id: int,
        requested_date: date,
        max_days: int = SMART_SEARCH_MAX_DAYS,
        min_slots: int = SMART_SEARCH_MIN_SLOTS
    ) -> SmartAvailability:
        """
        Search the requested date, shifting forward one day at a time when it
        yields fewer than min_slots slots.

        At most max_days dates are examined. When none qualifies, the result
        reports the last date examined with whatever slots it had.
        """
        search_date = requested_date
        slots: List[str] = []
        days_examined = 0
        for offset in range(max(max_days, 1)):
            search_date = requested_date + timedelta(days=offset)
            slots = list(self.enumerate(service_id, search_date))
            days_examined += 1
            if len(slots) >= min_slots:
                break
            logger.debug(f"Service {service_id}: {len(slots)} slot(s) on {search_date}, looking ahead")

        duration = self._service_duration(service_id)
        blocks = group_continuous_blocks(slots, duration) if duration else []
        morning, afternoon, evening = group_by_period(slots)

        return SmartAvailability(
            requested_date=requested_date,
            actual_date_searched=search_date,
            raw_slots=slots,
            morning=morning,
            afternoon=afternoon,
            evening=evening,
            continuous_blocks=blocks,
            hint=smart_search_hint(requested_date, search_date, blocks, days_examined),
        )

    def _service_duration(self, service_id: int) -> Optional[int]:
        service = self.planner.catalog.get_service(service_id)
        if service is None:
            return None
        return service.total_duration_minutes
