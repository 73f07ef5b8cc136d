"""
Soft, human-readable hints for agent-style availability callers.

Check endpoints used by conversational agents must not surface failures as
request errors. These helpers turn failure codes and smart-search results into
short sentences the agent can relay to the patient.
"""

from datetime import date
from typing import Dict, List, Optional

from core.errors import AllocationErrorCode, AllocationFailure
from shared_types import ContinuousBlock

FAILURE_HINTS: Dict[AllocationErrorCode, str] = {
    AllocationErrorCode.NOT_FOUND: "This service is not offered. Ask the patient to choose another service.",
    AllocationErrorCode.CLINIC_BLOCKED: "The clinic is closed at that time. Suggest another day.",
    AllocationErrorCode.OUT_OF_SCHEDULE: "Nobody is working at that time. Suggest a time within opening hours.",
    AllocationErrorCode.PROFESSIONAL_BUSY: "All professionals are busy at that time. Offer a nearby time.",
    AllocationErrorCode.RESOURCE_BUSY: "The required equipment is in use at that time. Offer a nearby time.",
    AllocationErrorCode.INVALID_TIME_RANGE: "That time has already passed. Ask for a future time.",
    AllocationErrorCode.INVALID_STATUS_TRANSITION: "This appointment can no longer be changed.",
}


def failure_hint(failure: AllocationFailure) -> Optional[str]:
    """Hint for a domain failure; INTERNAL never gets one."""
    return FAILURE_HINTS.get(failure.code)


def _join_phrases(phrases: List[str]) -> str:
    if len(phrases) == 1:
        return phrases[0]
    return f"{', '.join(phrases[:-1])} and {phrases[-1]}"


def smart_search_hint(
    requested_date: date,
    actual_date: date,
    blocks: List[ContinuousBlock],
    days_examined: int
) -> str:
    """
    Describe a smart search result in one sentence.

    Example:
        "No slots on 2030-01-07. However, on 2030-01-08 there is availability
        from 09:00 to 11:00 and from 15:00 to 16:00."
    """
    if not blocks:
        if days_examined <= 1:
            return f"No availability found for {requested_date.isoformat()}."
        following = days_examined - 1
        return f"No availability found for {requested_date.isoformat()} or the following {following} days."

    ranges = _join_phrases([f"from {block.start_time} to {block.end_time}" for block in blocks])
    if requested_date != actual_date:
        return (
            f"No slots on {requested_date.isoformat()}. However, on {actual_date.isoformat()} "
            f"there is availability {ranges}."
        )
    return f"On {actual_date.isoformat()} there is availability {ranges}."
