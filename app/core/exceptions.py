"""Domain errors raised by the scheduling services.

All of them derive from ``ValueError`` so callers that only care about
"the request was rejected" can keep catching ``ValueError``.
"""

from typing import Optional


class SchedulingError(ValueError):
    """Base class for rejected scheduling operations."""

    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class SlotUnavailableError(SchedulingError):
    """The requested slot was taken between listing and booking."""

    retryable = True

    def __init__(self, date_key: str, time_label: str, status: Optional[str] = None):
        super().__init__(
            f"Slot {date_key} {time_label} is no longer available",
            date=date_key,
            time=time_label,
            status=status,
        )


class ShopClosedError(SchedulingError):
    """The requested date or time is outside the shop's opening hours."""


class InvalidTransitionError(SchedulingError):
    def __init__(self, appointment_id: str, current: str, requested: str):
        super().__init__(
            f"Cannot transition appointment {appointment_id} from {current} to {requested}",
            appointment_id=appointment_id,
            current=current,
            requested=requested,
        )


class ChairBusyError(SchedulingError):
    """Someone is already being served."""

    def __init__(self, appointment_id: str):
        super().__init__(
            f"Appointment {appointment_id} is still in progress",
            appointment_id=appointment_id,
        )


class ConcurrentUpdateError(SchedulingError):
    """The appointment changed underneath us; reload and try again."""

    retryable = True


class AppointmentNotFoundError(SchedulingError):
    def __init__(self, appointment_id: str):
        super().__init__(
            f"Appointment {appointment_id} not found", appointment_id=appointment_id
        )


class ServiceNotFoundError(SchedulingError):
    def __init__(self, service_id: str):
        super().__init__(f"Service {service_id} not found", service_id=service_id)
