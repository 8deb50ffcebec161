from datetime import datetime

from app.schemas.scheduling import ShopStatus
from app.schemas.shop_calendar import ShopCalendarConfig
from app.services.slots import resolve_day


def shop_status(config: ShopCalendarConfig, now: datetime) -> ShopStatus:
    """Open/closed status at ``now`` (shop-local wall clock).

    A closed exception for today wins over everything else. Otherwise the
    shop is open while ``start_hour <= now.hour < end_hour``; minutes are
    not considered.
    """
    resolved = resolve_day(now.date(), config)

    if resolved.closed:
        return ShopStatus(is_open=False, reason=resolved.closed_reason)

    if resolved.start_hour >= resolved.end_hour:
        return ShopStatus(is_open=False, reason="no_hours")

    if now.hour < resolved.start_hour:
        reason, is_open = "before_opening", False
    elif now.hour >= resolved.end_hour:
        reason, is_open = "after_closing", False
    else:
        reason, is_open = "open", True

    return ShopStatus(
        is_open=is_open,
        reason=reason,
        opens_at_hour=resolved.start_hour,
        closes_at_hour=resolved.end_hour,
    )


def is_open_now(config: ShopCalendarConfig, now: datetime) -> bool:
    return shop_status(config, now).is_open
