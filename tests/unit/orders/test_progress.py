"""Unit tests for ProgressCalculator."""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus, StageName, StageStatus
from modules.orders.progress import ProgressCalculator

pytestmark = pytest.mark.unit


@pytest.fixture()
def calculator():
    return ProgressCalculator()


def _complete(order, stage):
    order.put_stage(
        stage, order.get_stage(stage).model_copy(update={"status": StageStatus.COMPLETED})
    )


def test_new_order_counts_submission(calculator, new_order):
    assert calculator.percentage(new_order) == 25
    assert new_order.progress == 25


def test_each_completed_stage_adds_a_quarter(calculator, new_order):
    _complete(new_order, StageName.DESIGN)
    assert calculator.percentage(new_order) == 50
    _complete(new_order, StageName.PREPRESS)
    assert calculator.percentage(new_order) == 75


def test_completed_order_is_full(calculator, new_order):
    new_order.status = OrderStatus.COMPLETED
    assert calculator.percentage(new_order) == 100


def test_cancelled_order_keeps_last_value(calculator, new_order):
    new_order.progress = 50
    new_order.status = OrderStatus.CANCELLED
    _complete(new_order, StageName.PREPRESS)
    assert calculator.percentage(new_order) == 50


def test_in_progress_stage_does_not_count(calculator, prepress_order):
    # Design completed, prepress only started.
    assert calculator.percentage(prepress_order) == 50


def test_never_decreases_along_happy_path(calculator, new_order):
    seen = [calculator.percentage(new_order)]
    for stage in (StageName.DESIGN, StageName.PREPRESS, StageName.DELIVERY):
        _complete(new_order, stage)
        seen.append(calculator.percentage(new_order))
    new_order.status = OrderStatus.COMPLETED
    seen.append(calculator.percentage(new_order))

    assert seen == sorted(seen)
    assert seen[-1] == 100
