from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.api.deps.scheduling import get_booking_lock, get_shop_now, scheduling_http_error
from app.core.exceptions import SchedulingError
from app.core.locks import SlotLock
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import AppointmentCreate, AppointmentList, AppointmentRead
from app.services.booking import BookingService

router = APIRouter()


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    slot_lock: SlotLock = Depends(get_booking_lock),
):
    """Book a slot; fails with 409 if it was taken in the meantime."""
    try:
        return await BookingService(db, slot_lock).book(appointment_data, now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)


@router.get("", response_model=AppointmentList)
async def get_appointments(
    day: Optional[date] = Query(None, alias="date"),
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    client_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """List appointments, optionally filtered by date, status or client."""
    appointments = await BookingService(db).list_appointments(
        day, appointment_status, client_id
    )
    return AppointmentList(appointments=appointments, total_count=len(appointments))


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(appointment_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await BookingService(db).get_appointment(appointment_id)
    except SchedulingError as e:
        raise scheduling_http_error(e)
