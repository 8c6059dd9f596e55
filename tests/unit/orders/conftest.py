"""In-memory order fixtures for the domain components.

Orders built here are never saved: the state machine, tracker and router
operate on the instance alone.
"""

import pytest

from modules.orders.constants import OrderStatus, StageName, StageStatus
from modules.orders.machine import OrderStateMachine
from modules.orders.models import Order


@pytest.fixture()
def machine():
    return OrderStateMachine()


@pytest.fixture()
def new_order(machine, client_record, client_actor):
    order = Order(client=client_record, title="Business cards")
    machine.open(order, client_actor)
    return order


@pytest.fixture()
def prepress_order(new_order):
    """Order sitting In Prepress with the design stage behind it."""
    new_order.status = OrderStatus.IN_PREPRESS
    new_order.put_stage(
        StageName.DESIGN,
        new_order.get_stage(StageName.DESIGN).model_copy(
            update={"status": StageStatus.COMPLETED}
        ),
    )
    new_order.put_stage(
        StageName.PREPRESS,
        new_order.get_stage(StageName.PREPRESS).model_copy(
            update={"status": StageStatus.IN_PROGRESS}
        ),
    )
    return new_order
