"""Display-only completion percentage.

Nothing in the transition logic reads ``Order.progress``; it is refreshed
after each command purely for list views and progress bars.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.orders.constants import OrderStatus, StageName
from modules.orders.stages import STAGES, StageRegistry

if TYPE_CHECKING:
    from modules.orders.models import Order


class ProgressCalculator:
    def __init__(self, registry: StageRegistry = STAGES) -> None:
        self._registry = registry

    def percentage(self, order: Order) -> int:
        """0 to 100, in equal steps per stage.

        Completed orders report 100, cancelled orders keep the last value
        computed before cancellation.  Submission is always counted.
        """
        if order.status == OrderStatus.COMPLETED:
            return 100
        if order.status == OrderStatus.CANCELLED:
            return order.progress

        weight = 100 // len(self._registry)
        completed = sum(
            1
            for definition in self._registry
            if definition.name == StageName.SUBMISSION
            or order.get_stage(definition.name).is_completed
        )
        return min(100, completed * weight)


progress_calculator = ProgressCalculator()
