from datetime import date

import pytest

from app.schemas.shop_calendar import DateException, ShopCalendarConfig, WeekDay
from app.services.holidays import HolidayService
from app.services.slots import generate_candidate_slots, resolve_day

MONDAY = date(2025, 3, 10)
SUNDAY = date(2025, 3, 16)
CHRISTMAS = date(2025, 12, 25)  # Thursday


class TestGenerateCandidateSlots:
    """Test candidate slot generation."""

    def test_default_day_has_twenty_half_hour_slots(self):
        config = ShopCalendarConfig(start_hour=9, end_hour=19, slot_interval_minutes=30)

        slots = generate_candidate_slots(MONDAY, config)

        assert len(slots) == 20
        assert slots[0].label == "09:00"
        assert slots[-1].label == "18:30"
        assert slots[0].start_minutes == 540

    def test_slots_are_chronological_and_deterministic(self):
        config = ShopCalendarConfig(slot_interval_minutes=15)

        first = generate_candidate_slots(MONDAY, config)
        second = generate_candidate_slots(MONDAY, config)

        assert first == second
        starts = [slot.start_minutes for slot in first]
        assert starts == sorted(starts)
        assert all(b - a == 15 for a, b in zip(starts, starts[1:]))

    def test_exception_hours_override_defaults(self):
        config = ShopCalendarConfig(
            exceptions={"2025-03-10": DateException(start_hour=10, end_hour=14)}
        )

        labels = [slot.label for slot in generate_candidate_slots(MONDAY, config)]

        assert labels[0] == "10:00"
        assert labels[-1] == "13:30"
        assert len(labels) == 8

    def test_afternoon_exception_stays_inside_window(self):
        config = ShopCalendarConfig(
            exceptions={"2025-03-10": DateException(start_hour=13, end_hour=17)}
        )

        slots = generate_candidate_slots(MONDAY, config)

        assert all(13 * 60 <= slot.start_minutes < 17 * 60 for slot in slots)
        assert [slot.label for slot in slots][::2] == ["13:00", "14:00", "15:00", "16:00"]

    def test_partial_exception_keeps_other_default(self):
        config = ShopCalendarConfig(exceptions={"2025-03-10": DateException(end_hour=12)})

        labels = [slot.label for slot in generate_candidate_slots(MONDAY, config)]

        assert labels == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]

    def test_closed_exception_suppresses_all_slots(self):
        config = ShopCalendarConfig(
            exceptions={
                "2025-03-10": DateException(start_hour=8, end_hour=20, closed=True)
            }
        )

        assert generate_candidate_slots(MONDAY, config) == []

    def test_exception_only_applies_to_its_date(self):
        config = ShopCalendarConfig(
            exceptions={"2025-03-11": DateException(closed=True)}
        )

        assert len(generate_candidate_slots(MONDAY, config)) == 20

    def test_weekly_closed_day_has_no_slots(self):
        config = ShopCalendarConfig(closed_days=[WeekDay.SUNDAY])

        assert generate_candidate_slots(SUNDAY, config) == []
        assert len(generate_candidate_slots(MONDAY, config)) == 20

    @pytest.mark.parametrize(
        "start_hour,end_hour,interval",
        [(19, 9, 30), (12, 12, 30), (9, 19, 0), (9, 19, -15)],
    )
    def test_unusable_configuration_yields_no_slots(self, start_hour, end_hour, interval):
        config = ShopCalendarConfig(
            start_hour=start_hour, end_hour=end_hour, slot_interval_minutes=interval
        )

        assert generate_candidate_slots(MONDAY, config) == []

    def test_interval_not_dividing_window(self):
        config = ShopCalendarConfig(start_hour=9, end_hour=10, slot_interval_minutes=25)

        labels = [slot.label for slot in generate_candidate_slots(MONDAY, config)]

        assert labels == ["09:00", "09:25", "09:50"]


class TestResolveDay:
    """Test effective calendar resolution for a date."""

    def test_defaults(self):
        config = ShopCalendarConfig(lunch_start_hour=12, lunch_end_hour=13)

        resolved = resolve_day(MONDAY, config)

        assert not resolved.closed
        assert resolved.closed_reason is None
        assert (resolved.start_hour, resolved.end_hour) == (9, 19)
        assert resolved.is_lunch_hour(12)
        assert not resolved.is_lunch_hour(13)

    def test_exception_lunch_replaces_default_window(self):
        config = ShopCalendarConfig(
            lunch_start_hour=12,
            lunch_end_hour=13,
            exceptions={
                "2025-03-10": DateException(lunch_start_hour=13, lunch_end_hour=14)
            },
        )

        resolved = resolve_day(MONDAY, config)

        assert (resolved.lunch_start_hour, resolved.lunch_end_hour) == (13, 14)

    def test_closed_reasons(self):
        config = ShopCalendarConfig(
            closed_days=[WeekDay.SUNDAY],
            exceptions={"2025-03-10": DateException(closed=True)},
        )

        assert resolve_day(MONDAY, config).closed_reason == "exception"
        assert resolve_day(SUNDAY, config).closed_reason == "weekly_closed_day"

    def test_exception_cannot_reopen_weekly_closed_day(self):
        config = ShopCalendarConfig(
            closed_days=[WeekDay.SUNDAY],
            exceptions={"2025-03-16": DateException(start_hour=10, end_hour=14)},
        )

        assert resolve_day(SUNDAY, config).closed

    def test_holiday_closed_when_enabled(self):
        config = ShopCalendarConfig(close_on_holidays=True, holiday_country="BR")

        resolved = resolve_day(CHRISTMAS, config)

        assert resolved.closed
        assert resolved.closed_reason == "holiday"
        assert generate_candidate_slots(CHRISTMAS, config) == []

    def test_holiday_ignored_when_disabled(self):
        config = ShopCalendarConfig(close_on_holidays=False, holiday_country="BR")

        assert not resolve_day(CHRISTMAS, config).closed

    def test_holiday_with_explicit_hours_opens(self):
        config = ShopCalendarConfig(
            close_on_holidays=True,
            holiday_country="BR",
            exceptions={"2025-12-25": DateException(start_hour=9, end_hour=12)},
        )

        resolved = resolve_day(CHRISTMAS, config)

        assert not resolved.closed
        assert len(generate_candidate_slots(CHRISTMAS, config)) == 6


class TestHolidayService:
    def test_lookup(self):
        assert HolidayService.is_holiday("br", CHRISTMAS)
        assert HolidayService.get_holiday_name("BR", CHRISTMAS)
        assert HolidayService.get_holiday_name("BR", MONDAY) is None
