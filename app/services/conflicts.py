from datetime import date as date_type, datetime
from typing import Iterable, Mapping, NamedTuple, Optional
import logging

from app.schemas.scheduling import CandidateSlot, SlotStatus, SlotView, ViewerIdentity
from app.utils.validation import label_to_minutes, minute_of_day

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_MINUTES = 30

HIDDEN_STATUSES = (SlotStatus.PAST, SlotStatus.LUNCH)


class BlockedInterval(NamedTuple):
    start: int
    end: int
    owned: bool
    appointment_id: Optional[str]


def _status_value(appointment) -> str:
    status = getattr(appointment, "status", None)
    return status.value if hasattr(status, "value") else str(status)


def _date_value(appointment) -> Optional[date_type]:
    value = getattr(appointment, "date", None)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date_type.fromisoformat(value[:10])
    return value


def blocked_intervals(
    appointments: Iterable,
    day: date_type,
    service_durations: Mapping[str, int],
    viewer: Optional[ViewerIdentity] = None,
    default_duration_minutes: int = DEFAULT_BLOCK_MINUTES,
) -> list[BlockedInterval]:
    """Occupied ``[start, start + own service duration)`` ranges on ``day``.

    Each appointment blocks for the duration of *its own* service. Cancelled
    appointments and appointments on other dates are ignored.
    """
    intervals = []
    for appointment in appointments:
        if _status_value(appointment) == "cancelled":
            continue
        if _date_value(appointment) != day:
            continue

        try:
            start = label_to_minutes(appointment.time)
        except ValueError:
            logger.warning(
                f"Ignoring appointment {appointment.id} with malformed time "
                f"{appointment.time!r}"
            )
            continue

        duration = service_durations.get(str(appointment.service_id))
        if duration is None:
            logger.warning(
                f"Service {appointment.service_id} of appointment {appointment.id} "
                f"not in catalog; blocking {default_duration_minutes} minutes"
            )
            duration = default_duration_minutes

        intervals.append(
            BlockedInterval(
                start=start,
                end=start + duration,
                owned=bool(viewer and viewer.owns(appointment)),
                appointment_id=getattr(appointment, "id", None),
            )
        )

    intervals.sort(key=lambda interval: interval.start)
    return intervals


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap; touching endpoints do not conflict."""
    return start_a < end_b and end_a > start_b


def resolve_slot_statuses(
    candidates: Iterable[CandidateSlot],
    requested_duration_minutes: int,
    appointments: Iterable,
    viewer: Optional[ViewerIdentity],
    now: datetime,
    day: date_type,
    service_durations: Mapping[str, int],
    lunch_window: Optional[tuple[int, int]] = None,
    default_duration_minutes: int = DEFAULT_BLOCK_MINUTES,
) -> list[SlotView]:
    """
    Mark each candidate slot for a requested service duration.

    Order of evaluation:
        1. overlap with an existing appointment -> ``own`` or ``occupied``
        2. still ``available`` and starting before ``now`` today -> ``past``
        3. start hour inside the lunch window -> ``lunch``

    Args:
        candidates: Output of ``generate_candidate_slots`` for ``day``
        requested_duration_minutes: Duration of the service being booked
        appointments: Existing appointments (other dates/cancelled are ignored)
        viewer: Identity used to tell "your booking" from someone else's
        now: Local wall-clock time; only its date and minute-of-day are used
        day: Date the candidates belong to
        service_durations: ``service_id -> duration_minutes`` catalog
        lunch_window: ``(start_hour, end_hour)`` or None

    Returns:
        One SlotView per candidate, same order
    """
    # A zero-length request would never overlap anything
    requested = max(int(requested_duration_minutes), 1)
    intervals = blocked_intervals(
        appointments, day, service_durations, viewer, default_duration_minutes
    )
    is_today = now.date() == day
    now_minutes = minute_of_day(now)

    views = []
    for candidate in candidates:
        slot_start = candidate.start_minutes
        slot_end = slot_start + requested

        conflicting = [
            interval
            for interval in intervals
            if overlaps(slot_start, slot_end, interval.start, interval.end)
        ]
        if any(interval.owned for interval in conflicting):
            status = SlotStatus.OWN
        elif conflicting:
            status = SlotStatus.OCCUPIED
        else:
            status = SlotStatus.AVAILABLE

        if status == SlotStatus.AVAILABLE and is_today and slot_start < now_minutes:
            status = SlotStatus.PAST

        if lunch_window is not None:
            lunch_start, lunch_end = lunch_window
            if lunch_start <= slot_start // 60 < lunch_end:
                status = SlotStatus.LUNCH

        views.append(
            SlotView(label=candidate.label, start_minutes=slot_start, status=status)
        )

    return views


def offerable_slots(views: Iterable[SlotView]) -> list[SlotView]:
    """Drop ``past`` and ``lunch`` slots; occupied/own stay visible but disabled."""
    return [view for view in views if view.status not in HIDDEN_STATUSES]


def find_slot(views: Iterable[SlotView], label: str) -> Optional[SlotView]:
    return next((view for view in views if view.label == label), None)
