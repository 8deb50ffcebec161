from datetime import date as date_type, datetime, timedelta
from itertools import groupby
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.appointment import AppointmentRead, DaySchedule, WeekSchedule
from app.schemas.scheduling import AvailableDays, SlotStatus, ViewerIdentity
from app.services.booking import evaluate_day, load_active_appointments
from app.services.catalog import ServiceCatalogService
from app.services.shop_settings import ShopSettingsService
from app.services.slots import resolve_day

logger = structlog.get_logger(__name__)

# Upper bound for range queries coming from the booking calendar
MAX_RANGE_DAYS = 62


class CalendarService:
    """Staff day/week views and the client-facing "which days are free" query."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings_service = ShopSettingsService(db)

    @staticmethod
    def _check_range(start: date_type, end: date_type) -> None:
        if end < start:
            raise ValueError("end date must not be before start date")
        if (end - start).days + 1 > MAX_RANGE_DAYS:
            raise ValueError(f"date range is limited to {MAX_RANGE_DAYS} days")

    async def _schedules(self, start: date_type, end: date_type) -> list[DaySchedule]:
        config = await self.settings_service.get_calendar_config()
        appointments = await load_active_appointments(self.db, start, end)
        by_day = {
            day: list(items) for day, items in groupby(appointments, key=lambda a: a.date)
        }

        schedules = []
        day = start
        while day <= end:
            resolved = resolve_day(day, config)
            schedules.append(
                DaySchedule(
                    date=day,
                    closed=resolved.closed,
                    closed_reason=resolved.closed_reason,
                    start_hour=resolved.start_hour,
                    end_hour=resolved.end_hour,
                    lunch_start_hour=resolved.lunch_start_hour,
                    lunch_end_hour=resolved.lunch_end_hour,
                    appointments=[
                        AppointmentRead.model_validate(a) for a in by_day.get(day, [])
                    ],
                )
            )
            day += timedelta(days=1)
        return schedules

    async def get_day_schedule(self, day: date_type) -> DaySchedule:
        return (await self._schedules(day, day))[0]

    async def get_week_schedule(self, start_day: date_type, days: int = 7) -> WeekSchedule:
        if days < 1:
            raise ValueError("days must be positive")
        end = start_day + timedelta(days=days - 1)
        self._check_range(start_day, end)
        return WeekSchedule(start_date=start_day, days=await self._schedules(start_day, end))

    async def get_available_days(
        self,
        start: date_type,
        end: date_type,
        service_id: str,
        viewer: Optional[ViewerIdentity],
        now: datetime,
    ) -> AvailableDays:
        """Dates between ``start`` and ``end`` with at least one free slot."""
        self._check_range(start, end)
        service = await ServiceCatalogService.require_active_service(self.db, service_id)
        config = await self.settings_service.get_calendar_config()
        durations = await ServiceCatalogService.get_duration_map(self.db)
        appointments = await load_active_appointments(self.db, start, end)

        available = []
        day = start
        while day <= end:
            # Days already gone can never have a free slot
            if day >= now.date():
                views = evaluate_day(
                    day,
                    config,
                    service.duration_minutes,
                    [a for a in appointments if a.date == day],
                    durations,
                    viewer,
                    now,
                )
                if any(view.status == SlotStatus.AVAILABLE for view in views):
                    available.append(day)
            day += timedelta(days=1)

        logger.debug(
            "Available days computed",
            service_id=service_id,
            start=start.isoformat(),
            end=end.isoformat(),
            count=len(available),
        )
        return AvailableDays(
            service_id=service.id, start_date=start, end_date=end, days=available
        )
