"""Celery tasks for the Orders module."""

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="orders.notify_status_change")
def notify_status_change(order_id: str, old_status: str, new_status: str, actor_id: str = ""):
    """Fan out a status-change notification.

    Delivery to clients and staff (mail, push, chat) is handled by the
    notification service; this task only records the hand-off.
    """
    logger.info(
        "order.notification_queued",
        order_id=order_id,
        old_status=old_status,
        new_status=new_status,
        actor_id=actor_id,
    )
    return {"order_id": order_id, "status": new_status}
