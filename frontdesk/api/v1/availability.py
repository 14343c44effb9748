"""Room availability endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from frontdesk.api.deps import get_engine, get_scheduler
from frontdesk.core.exceptions import AppException, NotFoundError, SnapshotUnavailable
from frontdesk.core.scheduler import ReconciliationScheduler
from frontdesk.schemas.availability import (
    RoomAvailabilityResponse,
    RoomStatusSummary,
    TickReportResponse,
    UpcomingResponse,
)
from frontdesk.schemas.booking import UpcomingBooking
from frontdesk.services.availability_engine import AvailabilityEngine

router = APIRouter()


@router.get("/summary", response_model=RoomStatusSummary)
async def get_status_summary(
    engine: Annotated[AvailabilityEngine, Depends(get_engine)],
) -> RoomStatusSummary:
    """Count rooms per stored status."""
    return RoomStatusSummary(**engine.room_status_summary())


@router.get("/rooms/{room_number}", response_model=RoomAvailabilityResponse)
async def get_room_availability(
    room_number: str,
    engine: Annotated[AvailabilityEngine, Depends(get_engine)],
) -> RoomAvailabilityResponse:
    """Stored and computed status of one room."""
    snapshot = engine.snapshot
    room = snapshot.room_by_number(room_number)
    if room is None:
        raise NotFoundError("Room", room_number)

    now = engine.clock.now()
    computed = engine.compute_room_status(room_number, now, snapshot)

    return RoomAvailabilityResponse(
        room_id=room.id,
        number=room.number,
        stored_status=room.status,
        computed_status=computed,
        in_sync=computed is None or computed is room.status,
        evaluated_at=now,
    )


@router.get("/upcoming", response_model=UpcomingResponse)
async def get_upcoming(
    engine: Annotated[AvailabilityEngine, Depends(get_engine)],
) -> UpcomingResponse:
    """Arrivals and departures within the lookahead window."""
    now = engine.clock.now()
    return UpcomingResponse(
        checkins=[UpcomingBooking.model_validate(b) for b in engine.upcoming_checkins(now)],
        checkouts=[UpcomingBooking.model_validate(b) for b in engine.upcoming_checkouts(now)],
        window_minutes=int(engine.reserved_lookahead.total_seconds() // 60),
        evaluated_at=now,
    )


@router.post("/force-check", response_model=TickReportResponse)
async def force_check(
    scheduler: Annotated[ReconciliationScheduler, Depends(get_scheduler)],
) -> TickReportResponse:
    """Run an expiry + reconciliation tick now."""
    report = await scheduler.force_check()
    if report is None:
        raise AppException(detail="Status check failed")
    if report.skipped:
        raise SnapshotUnavailable()

    return TickReportResponse(
        trigger=report.trigger,
        evaluated_at=report.evaluated_at,
        expired_bookings=report.expired_bookings,
        room_writes=report.room_writes,
        failed_writes=report.failed_writes,
    )
