from datetime import date as date_type
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class WeekDay(int, Enum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


def date_key(day: date_type) -> str:
    """Exception map key for a local calendar date (``YYYY-MM-DD``)."""
    return day.isoformat()


class DateException(BaseModel):
    """Per-date override of the default hours, lunch window or closure.

    Every field is optional; missing ones fall back to the shop defaults.
    """

    start_hour: Optional[int] = None
    end_hour: Optional[int] = None
    closed: bool = False
    lunch_start_hour: Optional[int] = None
    lunch_end_hour: Optional[int] = None

    @property
    def has_custom_hours(self) -> bool:
        return self.start_hour is not None or self.end_hour is not None


class ResolvedDay(BaseModel):
    """Effective calendar for one date after applying every override."""

    date: date_type
    start_hour: int
    end_hour: int
    closed: bool = False
    closed_reason: Optional[str] = None
    lunch_start_hour: Optional[int] = None
    lunch_end_hour: Optional[int] = None

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start_hour is not None and self.lunch_end_hour is not None

    def is_lunch_hour(self, hour: int) -> bool:
        if not self.has_lunch:
            return False
        return self.lunch_start_hour <= hour < self.lunch_end_hour


class ShopCalendarConfig(BaseModel):
    """Business hours, slot granularity and date exceptions.

    This model deliberately accepts inverted hours or a zero interval: the
    slot generator degrades to "no slots" for such input. Edits coming from
    staff go through ``ShopSettingsUpdate``, which validates them.
    """

    start_hour: int = 9
    end_hour: int = 19
    slot_interval_minutes: int = 30
    closed_days: List[WeekDay] = Field(default_factory=list)
    lunch_start_hour: Optional[int] = None
    lunch_end_hour: Optional[int] = None
    close_on_holidays: bool = False
    holiday_country: Optional[str] = None
    exceptions: Dict[str, DateException] = Field(default_factory=dict)

    model_config = {"from_attributes": True}

    def exception_for(self, day: date_type) -> Optional[DateException]:
        return self.exceptions.get(date_key(day))


def _check_hour(value: Optional[int], name: str) -> None:
    if value is not None and not 0 <= value <= 24:
        raise ValueError(f"{name} must be between 0 and 24")


def _check_window(start: Optional[int], end: Optional[int], label: str) -> None:
    if (start is None) != (end is None):
        raise ValueError(f"{label} start and end must be set together")
    if start is not None and start >= end:
        raise ValueError(f"{label} start must be before its end")


class DateExceptionUpdate(DateException):
    @model_validator(mode="after")
    def validate_hours(self):
        for name in ("start_hour", "end_hour", "lunch_start_hour", "lunch_end_hour"):
            _check_hour(getattr(self, name), name)
        if (
            self.start_hour is not None
            and self.end_hour is not None
            and self.start_hour >= self.end_hour
        ):
            raise ValueError("start_hour must be before end_hour")
        _check_window(self.lunch_start_hour, self.lunch_end_hour, "lunch")
        return self


class ShopSettingsUpdate(BaseModel):
    start_hour: Optional[int] = None
    end_hour: Optional[int] = None
    slot_interval_minutes: Optional[int] = Field(None, gt=0, le=240)
    closed_days: Optional[List[WeekDay]] = None
    lunch_start_hour: Optional[int] = None
    lunch_end_hour: Optional[int] = None
    close_on_holidays: Optional[bool] = None
    holiday_country: Optional[str] = Field(None, min_length=2, max_length=3)
    exceptions: Optional[Dict[str, DateExceptionUpdate]] = None

    @field_validator("exceptions")
    @classmethod
    def validate_exception_keys(cls, v):
        if v is None:
            return v
        for key in v:
            try:
                date_type.fromisoformat(key)
            except ValueError:
                raise ValueError(f"Exception key '{key}' is not a YYYY-MM-DD date")
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        for name in ("start_hour", "end_hour", "lunch_start_hour", "lunch_end_hour"):
            _check_hour(getattr(self, name), name)
        return self

    def merged_into(self, current: ShopCalendarConfig) -> ShopCalendarConfig:
        """Apply this partial update on top of ``current`` and validate the result."""
        data = current.model_dump()
        data.update(self.model_dump(exclude_unset=True))
        merged = ShopCalendarConfig.model_validate(data)
        if merged.start_hour >= merged.end_hour:
            raise ValueError("start_hour must be before end_hour")
        _check_window(merged.lunch_start_hour, merged.lunch_end_hour, "lunch")
        if merged.close_on_holidays and not merged.holiday_country:
            raise ValueError("holiday_country is required when close_on_holidays is set")
        return merged