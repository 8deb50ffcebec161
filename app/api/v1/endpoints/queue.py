from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.api.deps.scheduling import get_notifier, get_shop_now, scheduling_http_error
from app.core.exceptions import SchedulingError
from app.schemas.appointment import AppointmentComplete, AppointmentRead, QueueSnapshot
from app.services.queue import QueueManagerService

router = APIRouter()


@router.get("", response_model=QueueSnapshot)
async def get_queue(
    now: datetime = Depends(get_shop_now), db: AsyncSession = Depends(get_db)
):
    """Today's waiting line and whoever is in the chair."""
    return await QueueManagerService(db).get_queue(now)


@router.post(
    "/call-next",
    response_model=Optional[AppointmentRead],
    responses={204: {"description": "Nobody is waiting"}},
)
async def call_next(
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Move the head of the queue into the chair."""
    try:
        appointment = await QueueManagerService(db, notifier).call_next(now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)
    if appointment is None:
        await db.rollback()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return appointment


@router.post("/{appointment_id}/skip", response_model=AppointmentRead)
async def skip(
    appointment_id: str,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Send a waiting client to the back of the line."""
    try:
        return await QueueManagerService(db, notifier).skip(appointment_id, now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)


@router.post("/{appointment_id}/confirm", response_model=AppointmentRead)
async def confirm(
    appointment_id: str,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    try:
        return await QueueManagerService(db, notifier).confirm(appointment_id, now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel(
    appointment_id: str,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    try:
        return await QueueManagerService(db, notifier).cancel(appointment_id, now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)


@router.post("/{appointment_id}/no-show", response_model=AppointmentRead)
async def no_show(
    appointment_id: str,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Cancel a client who did not turn up and report the no-show."""
    try:
        return await QueueManagerService(db, notifier).no_show(appointment_id, now)
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)


@router.post("/{appointment_id}/complete", response_model=AppointmentRead)
async def complete(
    appointment_id: str,
    payload: Optional[AppointmentComplete] = None,
    now: datetime = Depends(get_shop_now),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Finish the service in the chair and notify the next client."""
    payload = payload or AppointmentComplete()
    try:
        return await QueueManagerService(db, notifier).complete(
            appointment_id, now, price=payload.price, notes=payload.notes
        )
    except SchedulingError as e:
        await db.rollback()
        raise scheduling_http_error(e)
