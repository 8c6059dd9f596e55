import django_filters

from modules.orders.constants import OrderPriority, OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    priority = django_filters.ChoiceFilter(choices=OrderPriority.choices)
    client = django_filters.UUIDFilter(field_name="client_id")
    assigned_to = django_filters.CharFilter(field_name="assigned_to")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")
    deadline_before = django_filters.DateFilter(field_name="deadline", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "priority",
            "client",
            "assigned_to",
            "start_date",
            "end_date",
            "deadline_before",
        ]
