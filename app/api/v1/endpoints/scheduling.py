from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.api.deps.scheduling import (
    get_booking_lock,
    get_shop_now,
    get_viewer,
    scheduling_http_error,
)
from app.core.exceptions import SchedulingError
from app.core.locks import SlotLock
from app.schemas.appointment import DaySchedule, WeekSchedule
from app.schemas.scheduling import AvailableDays, DaySlots, ShopStatus, ViewerIdentity
from app.services.booking import BookingService
from app.services.calendar import CalendarService
from app.services.shop_settings import ShopSettingsService
from app.services.shop_status import shop_status

router = APIRouter()


@router.get("/slots", response_model=DaySlots)
async def get_day_slots(
    service_id: str,
    day: date = Query(..., alias="date"),
    viewer: ViewerIdentity = Depends(get_viewer),
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    slot_lock: SlotLock = Depends(get_booking_lock),
):
    """Offerable slots for a service on a date, marked from the viewer's point of view."""
    try:
        return await BookingService(db, slot_lock).get_day_slots(
            day, service_id, viewer, now
        )
    except SchedulingError as e:
        raise scheduling_http_error(e)


@router.get("/available-days", response_model=AvailableDays)
async def get_available_days(
    service_id: str,
    start_date: date,
    end_date: date,
    viewer: ViewerIdentity = Depends(get_viewer),
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
):
    """Dates in a range that still have at least one free slot."""
    try:
        return await CalendarService(db).get_available_days(
            start_date, end_date, service_id, viewer, now
        )
    except SchedulingError as e:
        raise scheduling_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/status", response_model=ShopStatus)
async def get_shop_status(
    now: datetime = Depends(get_shop_now), db: AsyncSession = Depends(get_db)
):
    """Whether the shop is open right now."""
    config = await ShopSettingsService(db).get_calendar_config()
    return shop_status(config, now)


@router.get("/calendar/day", response_model=DaySchedule)
async def get_day_schedule(
    day: Optional[date] = Query(None, alias="date"),
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
):
    """Resolved hours and bookings for one date (today by default)."""
    return await CalendarService(db).get_day_schedule(day or now.date())


@router.get("/calendar/week", response_model=WeekSchedule)
async def get_week_schedule(
    start_date: Optional[date] = None,
    days: int = Query(7, ge=1, le=31),
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
):
    """Resolved hours and bookings for a run of consecutive dates."""
    try:
        return await CalendarService(db).get_week_schedule(start_date or now.date(), days)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
