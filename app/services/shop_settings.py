from datetime import date as date_type

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shop_settings import ShopSettings
from app.schemas.shop_calendar import (
    DateExceptionUpdate,
    ShopCalendarConfig,
    ShopSettingsUpdate,
    WeekDay,
    date_key,
)

logger = structlog.get_logger(__name__)

# Defaults for a freshly installed shop: 09-19, half-hour grid, closed on Sundays
DEFAULT_SETTINGS = {
    "start_hour": 9,
    "end_hour": 19,
    "slot_interval_minutes": 30,
    "closed_days": [WeekDay.SUNDAY.value],
    "exceptions": {},
}

# The calendar lives in one fixed row
SETTINGS_ROW_ID = 1


class ShopSettingsService:
    """Read and edit the shop calendar configuration (single row)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, for_update: bool = False):
        stmt = select(ShopSettings).filter(ShopSettings.id == SETTINGS_ROW_ID)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_settings(self, for_update: bool = False) -> ShopSettings:
        """Return the settings row, creating it with defaults on first access.

        ``for_update`` locks the row until the caller commits.
        """
        settings_row = await self._load(for_update)
        if settings_row:
            return settings_row

        try:
            self.db.add(ShopSettings(id=SETTINGS_ROW_ID, **DEFAULT_SETTINGS))
            await self.db.commit()
            logger.info("Shop settings created with defaults", settings_id=SETTINGS_ROW_ID)
        except IntegrityError:
            # Another session created the row first
            await self.db.rollback()
        return await self._load(for_update)

    async def get_calendar_config(self) -> ShopCalendarConfig:
        return self.to_config(await self.get_settings())

    @staticmethod
    def to_config(settings_row: ShopSettings) -> ShopCalendarConfig:
        return ShopCalendarConfig(
            start_hour=settings_row.start_hour,
            end_hour=settings_row.end_hour,
            slot_interval_minutes=settings_row.slot_interval_minutes,
            closed_days=settings_row.closed_days or [],
            lunch_start_hour=settings_row.lunch_start_hour,
            lunch_end_hour=settings_row.lunch_end_hour,
            close_on_holidays=bool(settings_row.close_on_holidays),
            holiday_country=settings_row.holiday_country,
            exceptions=settings_row.exceptions or {},
        )

    async def update_settings(self, update: ShopSettingsUpdate) -> ShopCalendarConfig:
        """Apply a partial update; raises ValueError if the merged calendar is invalid."""
        settings_row = await self.get_settings(for_update=True)
        merged = update.merged_into(self.to_config(settings_row))
        self._store(settings_row, merged)

        await self.db.commit()
        await self.db.refresh(settings_row)
        logger.info(
            "Shop settings updated",
            fields=sorted(update.model_dump(exclude_unset=True)),
            start_hour=merged.start_hour,
            end_hour=merged.end_hour,
            slot_interval_minutes=merged.slot_interval_minutes,
        )
        return merged

    async def set_exception(
        self, day: date_type, exception: DateExceptionUpdate
    ) -> ShopCalendarConfig:
        settings_row = await self.get_settings(for_update=True)
        config = self.to_config(settings_row)
        config.exceptions[date_key(day)] = exception
        self._store(settings_row, config)

        await self.db.commit()
        logger.info(
            "Date exception saved",
            date=date_key(day),
            closed=exception.closed,
            start_hour=exception.start_hour,
            end_hour=exception.end_hour,
        )
        return config

    async def remove_exception(self, day: date_type) -> bool:
        """Drop the exception for ``day`` so it reverts to the defaults."""
        settings_row = await self.get_settings(for_update=True)
        config = self.to_config(settings_row)
        if config.exceptions.pop(date_key(day), None) is None:
            return False
        self._store(settings_row, config)

        await self.db.commit()
        logger.info("Date exception removed", date=date_key(day))
        return True

    @staticmethod
    def _store(settings_row: ShopSettings, config: ShopCalendarConfig) -> None:
        data = config.model_dump(mode="json")
        for field, value in data.items():
            # JSON columns need a fresh object to register as dirty
            setattr(settings_row, field, value)
