"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.core.models import AuditEntry
from modules.orders.constants import (
    AttachmentKind,
    DeliveryMode,
    OrderPriority,
    OrderStatus,
    OrderType,
    StageName,
)
from modules.orders.models import Order

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order submission payload."""

    client_id = serializers.UUIDField()
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    order_type = serializers.ChoiceField(
        choices=OrderType.choices, required=False, default=OrderType.NEW
    )
    priority = serializers.ChoiceField(
        choices=OrderPriority.choices, required=False, default=OrderPriority.NORMAL
    )
    deadline = serializers.DateField(required=False, allow_null=True, default=None)
    specifications = serializers.DictField(required=False, default=dict)


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CompleteSubProcessSerializer(serializers.Serializer):
    stage = serializers.CharField()
    sub_process = serializers.CharField()


class ChooseDeliverySerializer(serializers.Serializer):
    mode = serializers.ChoiceField(choices=DeliveryMode.choices)
    shipment_company = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )
    address = serializers.JSONField(required=False, allow_null=True, default=None)


class AssignCourierSerializer(serializers.Serializer):
    courier_id = serializers.CharField(required=False)
    shipment_label = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )


class AssignSerializer(serializers.Serializer):
    assignee_id = serializers.CharField()


class AttachmentSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=StageName.choices, default=StageName.DESIGN)
    kind = serializers.ChoiceField(choices=AttachmentKind.choices)
    reference = serializers.CharField(max_length=1024)


class CommentSerializer(serializers.Serializer):
    text = serializers.CharField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class AuditEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEntry
        fields = [
            "id",
            "action",
            "actor_id",
            "actor_role",
            "details",
            "timestamp",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order snapshot, including stages and attachments."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_id",
            "title",
            "description",
            "order_type",
            "priority",
            "deadline",
            "status",
            "status_before_hold",
            "specifications",
            "assigned_to",
            "stages",
            "design_links",
            "files",
            "comments",
            "progress",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no stage snapshot)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_id",
            "title",
            "status",
            "priority",
            "deadline",
            "assigned_to",
            "progress",
            "version",
            "created_at",
        ]
        read_only_fields = fields
