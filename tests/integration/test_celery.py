"""Integration tests for the Celery wiring and the notification task."""

from unittest.mock import patch

import pytest

from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    """Verifies that Celery loads through Django settings."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "printshop"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "printshop"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_tasks_run_eagerly_under_test(self, settings):
        assert settings.CELERY_TASK_ALWAYS_EAGER is True


class TestNotifyStatusChange:
    """The status-change notification runs in-process in eager mode."""

    def test_delay_returns_result(self):
        from modules.orders.tasks import notify_status_change

        result = notify_status_change.delay(
            "order-1", OrderStatus.SUBMITTED, OrderStatus.DESIGNING, "7"
        )

        assert result.successful()
        assert result.result == {"order_id": "order-1", "status": "Designing"}

    def test_direct_call(self):
        from modules.orders.tasks import notify_status_change

        assert notify_status_change("order-2", "Designing", "Design Done") == {
            "order_id": "order-2",
            "status": "Design Done",
        }

    def test_transition_queues_notification_after_commit(
        self, order, order_service, designer, django_capture_on_commit_callbacks
    ):
        with patch("modules.orders.handlers.notify_status_change.delay") as delay:
            with django_capture_on_commit_callbacks(execute=True):
                order_service.transition(str(order.id), OrderStatus.DESIGNING, designer)

        delay.assert_called_once_with(
            str(order.id), OrderStatus.SUBMITTED, OrderStatus.DESIGNING, designer.id
        )

    def test_rejected_transition_queues_nothing(
        self, order, order_service, designer, django_capture_on_commit_callbacks
    ):
        from modules.orders.exceptions import InvalidTransition

        with patch("modules.orders.handlers.notify_status_change.delay") as delay:
            with django_capture_on_commit_callbacks(execute=True):
                with pytest.raises(InvalidTransition):
                    order_service.transition(
                        str(order.id), OrderStatus.COMPLETED, designer
                    )

        delay.assert_not_called()
