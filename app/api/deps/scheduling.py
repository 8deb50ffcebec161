from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import structlog
from fastapi import HTTPException, Query, status

from app.core.config import settings
from app.core.exceptions import (
    AppointmentNotFoundError,
    SchedulingError,
    ServiceNotFoundError,
    ShopClosedError,
)
from app.core.locks import SlotLock, get_slot_lock
from app.schemas.scheduling import ViewerIdentity
from app.services.notifications import CeleryNotifier

logger = structlog.get_logger(__name__)


def get_shop_now() -> datetime:
    """Current wall-clock time in the shop's timezone, as a naive datetime."""
    return datetime.now(ZoneInfo(settings.SHOP_TIMEZONE)).replace(tzinfo=None)


def get_booking_lock() -> SlotLock:
    return get_slot_lock()


def get_notifier() -> CeleryNotifier:
    return CeleryNotifier()


def get_viewer(
    client_id: Optional[str] = Query(None, description="Client viewing the slots"),
    phone: Optional[str] = Query(None, description="Guest phone when there is no client id"),
) -> ViewerIdentity:
    return ViewerIdentity(client_id=client_id, phone=phone)


def scheduling_http_error(exc: SchedulingError) -> HTTPException:
    """Map a rejected scheduling operation onto an HTTP status."""
    if isinstance(exc, (AppointmentNotFoundError, ServiceNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ShopClosedError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        # Slot taken, illegal transition, chair busy, lost update
        code = status.HTTP_409_CONFLICT

    logger.info(
        "Scheduling request rejected",
        error=type(exc).__name__,
        status_code=code,
        retryable=exc.retryable,
        **exc.context,
    )
    return HTTPException(
        status_code=code,
        detail={"message": exc.message, "retryable": exc.retryable},
    )
