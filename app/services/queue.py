from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    AppointmentNotFoundError,
    ChairBusyError,
    ConcurrentUpdateError,
    InvalidTransitionError,
)
from app.models.appointment import Appointment, AppointmentStatus, QUEUED_STATUSES
from app.schemas.appointment import AppointmentRead, QueueSnapshot
from app.services.catalog import ServiceCatalogService

logger = structlog.get_logger(__name__)


def _queue_key(appointment) -> tuple:
    return (appointment.queue_sequence or 0, appointment.time)


def derive_queue(appointments: Iterable, today: date_type) -> list:
    """Today's pending/confirmed appointments, head of the line first."""
    queued = [status.value for status in QUEUED_STATUSES]
    return sorted(
        (
            appointment
            for appointment in appointments
            if appointment.date == today and appointment.status in queued
        ),
        key=_queue_key,
    )


def currently_serving(appointments: Iterable):
    """The appointment in the chair, if any."""
    return next(
        (
            appointment
            for appointment in appointments
            if appointment.status == AppointmentStatus.IN_PROGRESS.value
        ),
        None,
    )


def next_queue_sequence(queue: Iterable) -> int:
    """A sequence number that sorts after every entry in ``queue``."""
    return max((appointment.queue_sequence or 0 for appointment in queue), default=0) + 1


class QueueManagerService:
    """Live queue for today's chair.

    Every operation receives ``now`` from the caller; nothing here reads the
    clock. Mutations lock the row and rely on the mapper version counter, so
    two staff members acting on the same appointment cannot both win.
    """

    def __init__(self, db: AsyncSession, notifier=None):
        self.db = db
        self.notifier = notifier

    async def _day_appointments(self, day: date_type, lock: bool = False) -> list:
        stmt = select(Appointment).filter(
            Appointment.date == day,
            Appointment.status.in_(
                [s.value for s in QUEUED_STATUSES] + [AppointmentStatus.IN_PROGRESS.value]
            ),
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _load_for_update(self, appointment_id: str) -> Appointment:
        result = await self.db.execute(
            select(Appointment)
            .filter(Appointment.id == appointment_id)
            .with_for_update()
        )
        appointment = result.scalar_one_or_none()
        if not appointment:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def _commit(self, appointment: Appointment) -> None:
        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            logger.warning("Concurrent appointment update", appointment_id=appointment.id)
            raise ConcurrentUpdateError(
                f"Appointment {appointment.id} was modified concurrently",
                appointment_id=appointment.id,
            )
        await self.db.refresh(appointment)

    def _transition(
        self,
        appointment: Appointment,
        new_status: AppointmentStatus,
        now: datetime,
        **kwargs,
    ) -> None:
        current = appointment.status
        if not appointment.transition_to(new_status, now, **kwargs):
            logger.warning(
                "Rejected status transition",
                appointment_id=appointment.id,
                current=current,
                requested=new_status.value,
            )
            raise InvalidTransitionError(appointment.id, current, new_status.value)

    async def get_queue(self, now: datetime) -> QueueSnapshot:
        today = now.date()
        appointments = await self._day_appointments(today)
        serving = currently_serving(appointments)
        return QueueSnapshot(
            date=today,
            queue=[AppointmentRead.model_validate(a) for a in derive_queue(appointments, today)],
            currently_serving=AppointmentRead.model_validate(serving) if serving else None,
        )

    async def call_next(self, now: datetime) -> Optional[Appointment]:
        """Move the head of today's queue into the chair.

        Returns None when nobody is waiting. Raises ChairBusyError while
        someone else is still in progress.
        """
        today = now.date()
        appointments = await self._day_appointments(today, lock=True)
        queue = derive_queue(appointments, today)
        if not queue:
            logger.info("Call next on empty queue", date=today.isoformat())
            return None

        serving = currently_serving(appointments)
        if serving:
            raise ChairBusyError(serving.id)

        head = queue[0]
        self._transition(head, AppointmentStatus.IN_PROGRESS, now)
        await self._commit(head)
        logger.info(
            "Client called", appointment_id=head.id, time=head.time, waiting=len(queue) - 1
        )
        return head

    async def skip(self, appointment_id: str, now: datetime) -> Appointment:
        """Send a waiting client to the back of today's line; their time is kept."""
        today = now.date()
        appointment = await self._load_for_update(appointment_id)
        if not appointment.is_queued or appointment.date != today:
            raise InvalidTransitionError(appointment.id, appointment.status, "skipped")

        queue = derive_queue(await self._day_appointments(today), today)
        appointment.queue_sequence = next_queue_sequence(queue)
        await self._commit(appointment)
        logger.info(
            "Client skipped",
            appointment_id=appointment.id,
            queue_sequence=appointment.queue_sequence,
        )
        return appointment

    async def confirm(self, appointment_id: str, now: datetime) -> Appointment:
        appointment = await self._load_for_update(appointment_id)
        self._transition(appointment, AppointmentStatus.CONFIRMED, now)
        await self._commit(appointment)
        logger.info("Appointment confirmed", appointment_id=appointment.id)
        return appointment

    async def cancel(
        self, appointment_id: str, now: datetime, notes: Optional[str] = None
    ) -> Appointment:
        appointment = await self._load_for_update(appointment_id)
        self._transition(appointment, AppointmentStatus.CANCELLED, now, notes=notes)
        await self._commit(appointment)
        logger.info(
            "Appointment cancelled",
            appointment_id=appointment.id,
            previous_status=appointment.previous_status,
        )
        return appointment

    async def no_show(self, appointment_id: str, now: datetime) -> Appointment:
        """Cancel for a client who never turned up and report it."""
        appointment = await self._load_for_update(appointment_id)
        self._transition(appointment, AppointmentStatus.CANCELLED, now, notes="no-show")
        await self._commit(appointment)
        logger.info("Appointment marked no-show", appointment_id=appointment.id)

        if self.notifier:
            self.notifier.no_show(appointment)
        return appointment

    async def complete(
        self,
        appointment_id: str,
        now: datetime,
        price: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Finish the service and free the chair for the next client."""
        appointment = await self._load_for_update(appointment_id)
        if price is None:
            service = await ServiceCatalogService.get_service(self.db, appointment.service_id)
            price = service.price if service else appointment.price

        self._transition(
            appointment, AppointmentStatus.COMPLETED, now, price=price, notes=notes
        )
        await self._commit(appointment)
        logger.info(
            "Appointment completed",
            appointment_id=appointment.id,
            price=str(appointment.price),
        )

        if self.notifier:
            today = now.date()
            queue = derive_queue(await self._day_appointments(today), today)
            self.notifier.chair_free(appointment, queue[0] if queue else None)
        return appointment
