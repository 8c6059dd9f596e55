"""The development seed drives orders through the real service layer."""

from io import StringIO

import pytest
from django.core.management import call_command

from modules.core.models import AuditEntry
from modules.orders.models import Order

pytestmark = pytest.mark.integration


def test_seed_creates_one_order_per_status():
    out = StringIO()
    call_command("seed_data", stdout=out)

    assert "Seed completed" in out.getvalue()
    assert sorted(Order.objects.values_list("status", flat=True)) == sorted(
        [
            "Submitted",
            "Designing",
            "Design Done",
            "In Prepress",
            "Ready for Delivery",
            "Completed",
        ]
    )
    completed = Order.objects.get(status="Completed")
    assert completed.progress == 100
    assert AuditEntry.objects.filter(subject_id=completed.id).count() > 5


def test_seed_is_rerunnable():
    call_command("seed_data", stdout=StringIO())
    out = StringIO()
    call_command("seed_data", stdout=out)

    assert "Orders already exist, skipping." in out.getvalue()
    assert Order.objects.count() == 6
