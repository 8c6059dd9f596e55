"""Task and claim DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.tasks.constants import ClaimType, TaskPriority
from modules.tasks.models import Claim, Task


class CreateTaskSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    order_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    priority = serializers.ChoiceField(
        choices=TaskPriority.choices, required=False, default=TaskPriority.NORMAL
    )
    due_date = serializers.DateField(required=False, allow_null=True, default=None)


class CreateClaimSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    claim_type = serializers.ChoiceField(
        choices=ClaimType.choices, required=False, default=ClaimType.OTHER
    )


class AssignSerializer(serializers.Serializer):
    assignee_id = serializers.CharField()


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class TaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "order_id",
            "status",
            "priority",
            "due_date",
            "completed_at",
            "completion_notes",
            "created_by",
            "assigned_to",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ClaimSerializer(serializers.ModelSerializer):
    class Meta:
        model = Claim
        fields = [
            "id",
            "order_id",
            "title",
            "description",
            "claim_type",
            "status",
            "resolution",
            "resolved_at",
            "resolved_by",
            "created_by",
            "assigned_to",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
