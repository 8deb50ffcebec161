from datetime import date, datetime
from functools import lru_cache
from typing import Optional

import holidays


class HolidayService:
    """Public holiday lookups for the shop's country.

    Uses the `holidays` library; calendars are cached per (country, year).
    """

    @staticmethod
    @lru_cache(maxsize=16)
    def _country_holidays(country: str, year: int) -> holidays.HolidayBase:
        return holidays.country_holidays(country.upper(), years=year)

    @staticmethod
    def _as_date(value) -> date:
        return value.date() if isinstance(value, datetime) else value

    @classmethod
    def is_holiday(cls, country: str, value) -> bool:
        d = cls._as_date(value)
        return d in cls._country_holidays(country, d.year)

    @classmethod
    def get_holiday_name(cls, country: str, value) -> Optional[str]:
        d = cls._as_date(value)
        return cls._country_holidays(country, d.year).get(d)
