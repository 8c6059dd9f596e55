"""Client API views.

Exposes the ``ClientService`` via HTTP using DRF ViewSets.  Domain
exceptions are caught and translated into HTTP status codes.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.clients.dtos import AddressDTO, CreateClientDTO
from modules.clients.exceptions import ClientAlreadyExists, ClientNotFound
from modules.clients.filters import ClientFilter
from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.clients.serializers import ClientSerializer, CreateClientSerializer
from modules.clients.services import ClientService
from modules.core.actors import Actor
from modules.core.exceptions import Unauthorized


class ClientViewSet(ListModelMixin, GenericViewSet):
    """List, retrieve and register clients.

    Clients only ever see their own record; staff see all of them.
    """

    filterset_class = ClientFilter
    search_fields = ["name", "email", "company"]
    ordering_fields = ["created_at", "name", "email"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Client.objects.all()
    serializer_class = ClientSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ClientService(repository=ClientDjangoRepository())

    def get_queryset(self):
        queryset = Client.objects.alive()
        actor = Actor.from_user(self.request.user)
        if not actor.is_staff:
            queryset = queryset.filter(user_ref=actor.id)
        return queryset

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/clients/{pk}/"""
        actor = Actor.from_user(request.user)
        try:
            client = self._service.get_client(pk or "")
        except ClientNotFound:
            return Response(
                {"detail": "Client not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        if not actor.is_staff and not client.is_owned_by(actor.id):
            return Response(
                {"detail": "Client not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ClientSerializer(client).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/clients/"""
        payload = CreateClientSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        try:
            dto = CreateClientDTO(
                name=data["name"],
                email=data["email"],
                phone=data.get("phone", ""),
                company=data.get("company", ""),
                address=AddressDTO(**data.get("address", {})),
                user_ref=data.get("user_ref"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            client = self._service.register_client(dto, Actor.from_user(request.user))
        except Unauthorized as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except ClientAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)
