from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            CourierAssigned,
            OrderCancelled,
            OrderCreated,
            OrderStatusChanged,
            StageCompleted,
        )
        from modules.orders.handlers import (
            courier_assigned_handler,
            order_cancelled_handler,
            order_created_handler,
            order_status_changed_handler,
            stage_completed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_handler)
        event_bus.subscribe(StageCompleted, stage_completed_handler)
        event_bus.subscribe(CourierAssigned, courier_assigned_handler)
