"""
Shared helpers for API endpoints.

Maps allocation failures onto HTTP errors and parses the date/time query
parameters used by the availability and appointment endpoints.
"""

from datetime import date, datetime
from typing import Dict

from fastapi import HTTPException, status

from core.errors import AllocationErrorCode, AllocationFailure
from utils.datetime_utils import parse_date_string, parse_datetime_string_to_utc

FAILURE_STATUS_CODES: Dict[AllocationErrorCode, int] = {
    AllocationErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AllocationErrorCode.CLINIC_BLOCKED: status.HTTP_409_CONFLICT,
    AllocationErrorCode.OUT_OF_SCHEDULE: status.HTTP_409_CONFLICT,
    AllocationErrorCode.PROFESSIONAL_BUSY: status.HTTP_409_CONFLICT,
    AllocationErrorCode.RESOURCE_BUSY: status.HTTP_409_CONFLICT,
    AllocationErrorCode.INVALID_STATUS_TRANSITION: status.HTTP_409_CONFLICT,
    AllocationErrorCode.INVALID_TIME_RANGE: status.HTTP_400_BAD_REQUEST,
    AllocationErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def failure_to_http_exception(failure: AllocationFailure) -> HTTPException:
    """Build the HTTP error for a domain failure; the body is {code, message}."""
    return HTTPException(
        status_code=FAILURE_STATUS_CODES[failure.code],
        detail=failure.to_dict(),
    )


def parse_date_query(value: str) -> date:
    """Parse a YYYY-MM-DD query parameter or raise 400."""
    try:
        return parse_date_string(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": AllocationErrorCode.INVALID_TIME_RANGE.value,
                "message": "Invalid date format, expected YYYY-MM-DD",
            }
        )


def parse_datetime_query(value: str) -> datetime:
    """Parse an ISO-8601 query parameter into UTC or raise 400."""
    try:
        return parse_datetime_string_to_utc(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": AllocationErrorCode.INVALID_TIME_RANGE.value,
                "message": f"Invalid datetime: {value}",
            }
        )
