from datetime import date as date_type, datetime
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AppointmentNotFoundError,
    ShopClosedError,
    SlotUnavailableError,
)
from app.core.locks import SlotLock, get_slot_lock
from app.models.appointment import (
    Appointment,
    AppointmentStatus,
    BookingSource,
    INITIAL_STATUS,
)
from app.schemas.appointment import AppointmentCreate
from app.schemas.scheduling import DaySlots, SlotStatus, SlotView, ViewerIdentity
from app.schemas.shop_calendar import ShopCalendarConfig, date_key
from app.services.catalog import ServiceCatalogService
from app.services.conflicts import find_slot, offerable_slots, resolve_slot_statuses
from app.services.shop_settings import ShopSettingsService
from app.services.slots import generate_candidate_slots, resolve_day

logger = structlog.get_logger(__name__)


async def load_active_appointments(
    db: AsyncSession, start: date_type, end: Optional[date_type] = None
) -> list[Appointment]:
    """Non-cancelled appointments from ``start`` to ``end`` inclusive, by date and time."""
    end = end or start
    result = await db.execute(
        select(Appointment)
        .filter(
            Appointment.date >= start,
            Appointment.date <= end,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        .order_by(Appointment.date, Appointment.time)
    )
    return list(result.scalars().all())


def evaluate_day(
    day: date_type,
    config: ShopCalendarConfig,
    duration_minutes: int,
    appointments: list,
    service_durations: dict[str, int],
    viewer: Optional[ViewerIdentity],
    now: datetime,
) -> list[SlotView]:
    """Every candidate slot of ``day`` with its status, hidden ones included.

    Free slots on a date before ``now`` come back as ``past``.
    """
    resolved = resolve_day(day, config)
    lunch_window = (
        (resolved.lunch_start_hour, resolved.lunch_end_hour) if resolved.has_lunch else None
    )
    views = resolve_slot_statuses(
        generate_candidate_slots(day, config),
        duration_minutes,
        appointments,
        viewer,
        now,
        day,
        service_durations,
        lunch_window=lunch_window,
        default_duration_minutes=settings.DEFAULT_SERVICE_DURATION_MINUTES,
    )
    if day < now.date():
        views = [
            view.model_copy(update={"status": SlotStatus.PAST})
            if view.status == SlotStatus.AVAILABLE
            else view
            for view in views
        ]
    return views


class BookingService:
    """Slot listing and the booking critical section."""

    def __init__(self, db: AsyncSession, slot_lock: Optional[SlotLock] = None):
        self.db = db
        self.slot_lock = slot_lock or get_slot_lock()
        self.settings_service = ShopSettingsService(db)

    async def get_day_slots(
        self,
        day: date_type,
        service_id: str,
        viewer: Optional[ViewerIdentity],
        now: datetime,
    ) -> DaySlots:
        """Offerable slots of ``day`` for a service, as seen by ``viewer``."""
        service = await ServiceCatalogService.require_active_service(self.db, service_id)
        config = await self.settings_service.get_calendar_config()

        views = evaluate_day(
            day,
            config,
            service.duration_minutes,
            await load_active_appointments(self.db, day),
            await ServiceCatalogService.get_duration_map(self.db),
            viewer,
            now,
        )
        return DaySlots(
            date=day,
            service_id=service.id,
            duration_minutes=service.duration_minutes,
            closed=resolve_day(day, config).closed,
            slots=offerable_slots(views),
        )

    async def book(self, request: AppointmentCreate, now: datetime) -> Appointment:
        """
        Create an appointment if its slot is still free.

        Availability is re-checked while holding the lock for the date, so two
        clients racing for overlapping times cannot both succeed.

        Raises:
            ServiceNotFoundError: unknown or inactive service
            ShopClosedError: the day is closed or ``time`` is not on its grid
            SlotUnavailableError: the slot is taken, past or overlaps another booking
        """
        service = await ServiceCatalogService.require_active_service(
            self.db, request.service_id
        )
        config = await self.settings_service.get_calendar_config()
        day_key = date_key(request.date)

        resolved = resolve_day(request.date, config)
        if resolved.closed:
            raise ShopClosedError(
                f"Shop is closed on {day_key} ({resolved.closed_reason})",
                date=day_key,
                reason=resolved.closed_reason,
            )
        candidates = generate_candidate_slots(request.date, config)
        if request.time not in {candidate.label for candidate in candidates}:
            raise ShopClosedError(
                f"{request.time} is not a bookable time on {day_key}",
                date=day_key,
                time=request.time,
            )

        source = BookingSource(request.booking_source.value)
        viewer = ViewerIdentity(client_id=request.client_id, phone=request.client_phone)

        async with self.slot_lock.hold(day_key):
            views = evaluate_day(
                request.date,
                config,
                service.duration_minutes,
                await load_active_appointments(self.db, request.date),
                await ServiceCatalogService.get_duration_map(self.db),
                viewer,
                now,
            )
            slot = find_slot(views, request.time)
            if slot.status == SlotStatus.LUNCH:
                raise ShopClosedError(
                    f"{request.time} on {day_key} is during the lunch break",
                    date=day_key,
                    time=request.time,
                )
            if slot.status != SlotStatus.AVAILABLE:
                logger.info(
                    "Booking rejected",
                    date=day_key,
                    time=request.time,
                    status=slot.status.value,
                )
                raise SlotUnavailableError(day_key, request.time, slot.status.value)

            appointment = Appointment(
                client_id=request.client_id,
                client_name=request.client_name,
                client_phone=request.client_phone,
                service_id=service.id,
                date=request.date,
                time=request.time,
                queue_sequence=0,
                status=INITIAL_STATUS[source].value,
                booking_source=source.value,
                status_changed_at=now,
                price=service.price,
                notes=request.notes,
            )
            self.db.add(appointment)
            await self.db.commit()
            await self.db.refresh(appointment)

        logger.info(
            "Appointment booked",
            appointment_id=appointment.id,
            date=day_key,
            time=appointment.time,
            service_id=service.id,
            status=appointment.status,
            booking_source=appointment.booking_source,
        )
        return appointment

    async def get_appointment(self, appointment_id: str) -> Appointment:
        result = await self.db.execute(
            select(Appointment).filter(Appointment.id == appointment_id)
        )
        appointment = result.scalar_one_or_none()
        if not appointment:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def list_appointments(
        self,
        day: Optional[date_type] = None,
        status: Optional[AppointmentStatus] = None,
        client_id: Optional[str] = None,
    ) -> list[Appointment]:
        stmt = select(Appointment)
        if day:
            stmt = stmt.filter(Appointment.date == day)
        if status:
            stmt = stmt.filter(Appointment.status == status.value)
        if client_id:
            stmt = stmt.filter(Appointment.client_id == client_id)
        stmt = stmt.order_by(Appointment.date, Appointment.time)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
