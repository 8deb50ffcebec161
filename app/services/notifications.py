"""Outbound side channel for queue events.

The scheduler only decides *when* a client should hear something. The tasks
below run on the worker consuming the ``notifications`` queue; each one builds
the event payload, logs it and returns it as the task result. No message is
delivered to the client from here.
"""

from typing import Optional

import structlog

from app.core.celery import celery_app
from app.core.config import settings

logger = structlog.get_logger(__name__)


@celery_app.task(name="app.services.notifications.notify_chair_free")
def notify_chair_free(
    finished_appointment_id: str,
    next_appointment_id: Optional[str] = None,
    next_client_name: Optional[str] = None,
    next_client_phone: Optional[str] = None,
) -> dict:
    """Tell the next client in line that the chair is free."""
    payload = {
        "event": "chair_free",
        "finished_appointment_id": finished_appointment_id,
        "next_appointment_id": next_appointment_id,
        "recipient_name": next_client_name,
        "recipient_phone": next_client_phone,
        "shop_contact_phone": settings.SHOP_CONTACT_PHONE,
    }
    logger.info(
        "Chair free notification queued",
        finished_appointment_id=finished_appointment_id,
        next_appointment_id=next_appointment_id,
    )
    return payload


@celery_app.task(name="app.services.notifications.notify_no_show")
def notify_no_show(
    appointment_id: str,
    client_id: Optional[str] = None,
    client_phone: Optional[str] = None,
) -> dict:
    """Report a no-show so loyalty bookkeeping can apply its penalty."""
    payload = {
        "event": "no_show",
        "appointment_id": appointment_id,
        "client_id": client_id,
        "client_phone": client_phone,
    }
    logger.info(
        "No-show notification queued", appointment_id=appointment_id, client_id=client_id
    )
    return payload


class CeleryNotifier:
    """Dispatches queue events to the Celery tasks above."""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled

    def chair_free(self, finished, next_up=None) -> None:
        if not self.enabled:
            return
        try:
            notify_chair_free.delay(
                str(finished.id),
                str(next_up.id) if next_up else None,
                next_up.client_name if next_up else None,
                next_up.client_phone if next_up else None,
            )
        except Exception as e:
            # The transition is already committed; a broker outage only loses the message
            logger.error(
                "Failed to dispatch chair free notification",
                appointment_id=str(finished.id),
                exc_info=e,
            )

    def no_show(self, appointment) -> None:
        if not self.enabled:
            return
        try:
            notify_no_show.delay(
                str(appointment.id), appointment.client_id, appointment.client_phone
            )
        except Exception as e:
            logger.error(
                "Failed to dispatch no-show notification",
                appointment_id=str(appointment.id),
                exc_info=e,
            )
