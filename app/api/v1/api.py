from fastapi import APIRouter

from app.api.v1.endpoints import (
    settings,
    services,
    scheduling,
    appointments,
    queue,
)

api_router = APIRouter()

# Shop calendar configuration
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])

# Service catalog endpoints
api_router.include_router(services.router, prefix="/services", tags=["services"])

# Slot availability, shop status and calendar views
api_router.include_router(scheduling.router, prefix="/scheduling", tags=["scheduling"])

# Booking endpoints
api_router.include_router(
    appointments.router, prefix="/appointments", tags=["appointments"]
)

# Live queue management
api_router.include_router(queue.router, prefix="/queue", tags=["queue"])
