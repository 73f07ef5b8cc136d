"""
Availability API endpoints.

All endpoints here run the planner in check mode and never write.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from api.responses import (
    AllocationPlanResponse,
    AvailabilityCheckResponse,
    AvailableSlotsMeta,
    AvailableSlotsResponse,
    SmartAvailabilityResponse,
)
from api.shared import parse_date_query, parse_datetime_query
from core.database import get_db
from core.errors import AllocationErrorCode, AllocationFailure
from repositories import SqlCatalogStore
from services.allocation_planner import AllocationPlanner
from services.availability_hints import failure_hint
from services.slot_search import SlotSearch

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_service_bookable(db: Session, service_id: int) -> None:
    service = SqlCatalogStore(db).get_service(service_id)
    if service is None or not service.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": AllocationErrorCode.NOT_FOUND.value,
                "message": f"Service {service_id} not found",
            }
        )


@router.get("/availability", summary="List available start times for a day")
async def get_available_slots(
    service_id: int = Query(..., description="Service to book"),
    date: str = Query(..., description="Date in YYYY-MM-DD format (clinic local)"),
    db: Session = Depends(get_db)
) -> AvailableSlotsResponse:
    """
    Get every start time on a date for which the full service can be booked.

    Start times are ISO-8601 UTC timestamps. An empty list is a valid answer.
    """
    target_date = parse_date_query(date)
    _ensure_service_bookable(db, service_id)

    slots = list(SlotSearch.for_session(db).enumerate(service_id, target_date))

    return AvailableSlotsResponse(
        data=slots,
        meta=AvailableSlotsMeta(total=len(slots), date=target_date.isoformat(), service_id=service_id),
    )


@router.get("/availability/smart", summary="Find availability, looking ahead when a date is full")
async def get_smart_availability(
    service_id: int = Query(..., description="Service to book"),
    date: str = Query(..., description="Preferred date in YYYY-MM-DD format (clinic local)"),
    db: Session = Depends(get_db)
) -> SmartAvailabilityResponse:
    """
    Get availability for a preferred date, shifting to the following days
    when it has no slots, grouped for presentation.
    """
    target_date = parse_date_query(date)
    _ensure_service_bookable(db, service_id)

    result = SlotSearch.for_session(db).smart_search(service_id, target_date)
    return SmartAvailabilityResponse.from_result(result)


@router.get("/availability/check", summary="Check whether a service can be booked at a time")
async def check_availability(
    service_id: int = Query(..., description="Service to book"),
    starts_at: str = Query(..., description="Start instant, ISO-8601 (naive values are UTC)"),
    db: Session = Depends(get_db)
) -> AvailabilityCheckResponse:
    """
    Dry-run the planner for one start time.

    Domain failures come back as available=false with the failure code and a
    hint, never as an HTTP error. Storage errors still produce a 500.
    """
    start_time = parse_datetime_query(starts_at)

    result = AllocationPlanner.for_session(db).allocate(service_id, start_time)
    if isinstance(result, AllocationFailure):
        logger.debug(f"Availability check for service {service_id} at {start_time}: {result.code.value}")
        return AvailabilityCheckResponse(
            available=False,
            reason=result.code.value,
            technical_detail=result.message,
            hint=failure_hint(result),
        )

    return AvailabilityCheckResponse(available=True, plan=AllocationPlanResponse.from_plan(result))
