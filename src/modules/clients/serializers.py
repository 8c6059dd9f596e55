"""Client DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.clients.models import Client


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(required=False, allow_blank=True, default="")
    city = serializers.CharField(required=False, allow_blank=True, default="")
    state = serializers.CharField(required=False, allow_blank=True, default="")
    postal_code = serializers.CharField(required=False, allow_blank=True, default="")
    country = serializers.CharField(required=False, allow_blank=True, default="")


class CreateClientSerializer(serializers.Serializer):
    """Validates the client registration payload."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    company = serializers.CharField(required=False, allow_blank=True, default="")
    address = AddressSerializer(required=False)
    user_ref = serializers.CharField(required=False, allow_null=True, default=None)


class ClientSerializer(serializers.ModelSerializer):
    """Read serializer for the Client resource."""

    class Meta:
        model = Client
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "company",
            "address",
            "user_ref",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
