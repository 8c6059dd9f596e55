"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    CourierAssigned,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    StageCompleted,
)
from modules.orders.tasks import notify_status_change
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            client_id=event.client_id,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )
        notify_status_change.delay(
            str(event.aggregate_id),
            event.old_status,
            event.new_status,
            event.actor_id,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info("order.event.cancelled", order_id=str(event.aggregate_id))


class StageCompletedHandler(IEventHandler[StageCompleted]):
    def handle(self, event: StageCompleted) -> None:
        logger.info(
            "order.event.stage_completed",
            order_id=str(event.aggregate_id),
            stage=event.stage,
        )


class CourierAssignedHandler(IEventHandler[CourierAssigned]):
    def handle(self, event: CourierAssigned) -> None:
        logger.info(
            "order.event.courier_assigned",
            order_id=str(event.aggregate_id),
            courier_id=event.courier_id,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
stage_completed_handler = StageCompletedHandler()
courier_assigned_handler = CourierAssignedHandler()
