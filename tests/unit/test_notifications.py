from types import SimpleNamespace
from unittest.mock import patch

from app.services.notifications import CeleryNotifier, notify_chair_free, notify_no_show


def appointment(id, name="Ana", phone="11999990000", client_id="c1"):
    return SimpleNamespace(id=id, client_name=name, client_phone=phone, client_id=client_id)


class TestCeleryNotifier:
    """Test dispatch of queue events to Celery."""

    @patch("app.services.notifications.notify_chair_free")
    def test_chair_free_dispatches_next_client(self, mock_task):
        CeleryNotifier(enabled=True).chair_free(appointment("a1"), appointment("a2", "Bia"))

        mock_task.delay.assert_called_once_with("a1", "a2", "Bia", "11999990000")

    @patch("app.services.notifications.notify_chair_free")
    def test_chair_free_with_empty_queue(self, mock_task):
        CeleryNotifier(enabled=True).chair_free(appointment("a1"), None)

        mock_task.delay.assert_called_once_with("a1", None, None, None)

    @patch("app.services.notifications.notify_no_show")
    def test_no_show(self, mock_task):
        CeleryNotifier(enabled=True).no_show(appointment("a1"))

        mock_task.delay.assert_called_once_with("a1", "c1", "11999990000")

    @patch("app.services.notifications.notify_no_show")
    def test_disabled_sends_nothing(self, mock_task):
        CeleryNotifier(enabled=False).no_show(appointment("a1"))

        mock_task.delay.assert_not_called()

    @patch("app.services.notifications.notify_no_show")
    def test_broker_failure_does_not_raise(self, mock_task):
        mock_task.delay.side_effect = ConnectionError("broker down")

        CeleryNotifier(enabled=True).no_show(appointment("a1"))


class TestNotificationTasks:
    def test_chair_free_payload(self):
        payload = notify_chair_free("a1", "a2", "Bia", "11999990000")

        assert payload["event"] == "chair_free"
        assert payload["next_appointment_id"] == "a2"
        assert payload["recipient_phone"] == "11999990000"

    def test_no_show_payload(self):
        payload = notify_no_show("a1", "c1")

        assert payload == {
            "event": "no_show",
            "appointment_id": "a1",
            "client_id": "c1",
            "client_phone": None,
        }
