from datetime import date
from types import SimpleNamespace

from app.services.queue import currently_serving, derive_queue, next_queue_sequence

TODAY = date(2025, 3, 10)


def appointment(id, time, status="confirmed", day=TODAY, queue_sequence=0):
    return SimpleNamespace(
        id=id, time=time, status=status, date=day, queue_sequence=queue_sequence
    )


class TestDeriveQueue:
    """Test queue ordering and membership."""

    def test_only_todays_waiting_appointments_in_time_order(self):
        appointments = [
            appointment("c", "11:00"),
            appointment("a", "09:00", status="pending"),
            appointment("x", "08:30", status="in_progress"),
            appointment("y", "08:00", status="completed"),
            appointment("z", "07:00", status="cancelled"),
            appointment("t", "09:30", day=date(2025, 3, 11)),
            appointment("b", "10:00"),
        ]

        queue = derive_queue(appointments, TODAY)

        assert [a.id for a in queue] == ["a", "b", "c"]

    def test_skipped_entry_sorts_after_unskipped(self):
        appointments = [
            appointment("a", "09:00", queue_sequence=1),
            appointment("b", "10:00"),
            appointment("c", "11:00"),
        ]

        queue = derive_queue(appointments, TODAY)

        assert [a.id for a in queue] == ["b", "c", "a"]
        # Scheduled time is untouched
        assert queue[-1].time == "09:00"

    def test_missing_sequence_counts_as_zero(self):
        appointments = [appointment("a", "10:00"), appointment("b", "09:00")]
        appointments[0].queue_sequence = None

        assert [a.id for a in derive_queue(appointments, TODAY)] == ["b", "a"]

    def test_empty(self):
        assert derive_queue([], TODAY) == []


class TestCurrentlyServing:
    def test_returns_in_progress(self):
        serving = appointment("x", "09:00", status="in_progress")

        assert currently_serving([appointment("a", "10:00"), serving]) is serving

    def test_none_when_chair_free(self):
        assert currently_serving([appointment("a", "10:00")]) is None


class TestNextQueueSequence:
    def test_one_past_highest(self):
        queue = [appointment("a", "09:00", queue_sequence=3), appointment("b", "10:00")]

        assert next_queue_sequence(queue) == 4

    def test_empty_queue(self):
        assert next_queue_sequence([]) == 1
