"""API dependencies for the availability engine."""

from fastapi import Request

from frontdesk.core.exceptions import AppException
from frontdesk.core.scheduler import ReconciliationScheduler
from frontdesk.services.availability_engine import AvailabilityEngine


async def get_scheduler(request: Request) -> ReconciliationScheduler:
    """Scheduler created by the application lifespan."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise AppException(status_code=503, detail="Availability engine is not running")
    return scheduler


async def get_engine(request: Request) -> AvailabilityEngine:
    """Engine created by the application lifespan."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise AppException(status_code=503, detail="Availability engine is not running")
    return engine
