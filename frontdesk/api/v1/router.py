"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from frontdesk.api.v1 import availability

api_router = APIRouter()

# Availability
api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])
