from datetime import date as date_type
import logging

from app.schemas.scheduling import CandidateSlot
from app.schemas.shop_calendar import ResolvedDay, ShopCalendarConfig, WeekDay
from app.services.holidays import HolidayService
from app.utils.validation import minutes_to_label

logger = logging.getLogger(__name__)


def resolve_day(day: date_type, config: ShopCalendarConfig) -> ResolvedDay:
    """
    Resolve the effective hours, lunch window and closure for a date.

    Precedence:
        1. Exception ``closed`` flag closes the day outright.
        2. Weekly closed days close the day; exceptions cannot reopen them.
        3. Public holidays (when enabled) close the day unless the exception
           for that date sets explicit hours.
        4. Exception hours/lunch fields override the defaults one by one.
    """
    exception = config.exception_for(day)

    start_hour = config.start_hour
    end_hour = config.end_hour
    lunch_start = config.lunch_start_hour
    lunch_end = config.lunch_end_hour

    if exception:
        if exception.start_hour is not None:
            start_hour = exception.start_hour
        if exception.end_hour is not None:
            end_hour = exception.end_hour
        # A lunch override replaces the default window as a pair
        if exception.lunch_start_hour is not None and exception.lunch_end_hour is not None:
            lunch_start = exception.lunch_start_hour
            lunch_end = exception.lunch_end_hour

    closed_reason = None
    if exception and exception.closed:
        closed_reason = "exception"
    elif WeekDay(day.weekday()) in config.closed_days:
        closed_reason = "weekly_closed_day"
    elif (
        config.close_on_holidays
        and config.holiday_country
        and not (exception and exception.has_custom_hours)
        and HolidayService.is_holiday(config.holiday_country, day)
    ):
        closed_reason = "holiday"

    return ResolvedDay(
        date=day,
        start_hour=start_hour,
        end_hour=end_hour,
        closed=closed_reason is not None,
        closed_reason=closed_reason,
        lunch_start_hour=lunch_start,
        lunch_end_hour=lunch_end,
    )


def generate_candidate_slots(
    day: date_type, config: ShopCalendarConfig
) -> list[CandidateSlot]:
    """Ordered candidate start times for ``day``.

    Returns an empty list for closed days and for unusable configuration
    (inverted hours, non-positive interval) instead of raising.
    """
    resolved = resolve_day(day, config)
    if resolved.closed:
        logger.debug(f"No slots for {day}: closed ({resolved.closed_reason})")
        return []

    interval = config.slot_interval_minutes
    if resolved.start_hour >= resolved.end_hour or interval <= 0:
        logger.warning(
            f"Unusable calendar for {day}: hours {resolved.start_hour}-"
            f"{resolved.end_hour}, interval {interval}; offering no slots"
        )
        return []

    return [
        CandidateSlot(label=minutes_to_label(minutes), start_minutes=minutes)
        for minutes in range(resolved.start_hour * 60, resolved.end_hour * 60, interval)
    ]
