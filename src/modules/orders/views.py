"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Domain
exceptions are caught and translated into HTTP status codes by
``modules.core.api.domain_error_response``; the view never swallows
generic exceptions.

Every command accepts the version the caller last saw, either as an
``If-Match`` header or a ``version`` field, and answers 409 when it is
stale.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.actors import Actor, Role
from modules.core.api import domain_error_response, expected_version, invalid_id_response
from modules.core.exceptions import DomainError
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import ChooseDeliveryDTO, CreateOrderDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AssignCourierSerializer,
    AssignSerializer,
    AttachmentSerializer,
    AuditEntrySerializer,
    ChooseDeliverySerializer,
    CommentSerializer,
    CompleteSubProcessSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    TransitionSerializer,
)
from modules.orders.services import OrderService


def _bad_version() -> Response:
    return Response(
        {"detail": "Version must be an integer."},
        status=status.HTTP_400_BAD_REQUEST,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: every write goes through the
    service layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "title", "client__name"]
    ordering_fields = ["created_at", "deadline", "status", "priority", "progress"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            client_repository=ClientDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "changes"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        queryset = Order.objects.alive().select_related("client")
        actor = Actor.from_user(self.request.user)
        if actor.role == Role.CLIENT:
            queryset = queryset.filter(client__user_ref=actor.id)
        return queryset

    def _actor(self, request: Request) -> Actor:
        return Actor.from_user(request.user)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        payload = CreateOrderSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        try:
            dto = CreateOrderDTO(**data)
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            order = self._service.create_order(dto, self._actor(request))
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering is handled by ``OrderFilter``, ordering by
        ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        try:
            order = self._service.get_order(pk, self._actor(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status transition
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/  ``{"status": "...", "notes": "..."}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = TransitionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return _bad_version()

        try:
            order = self._service.transition(
                pk,
                payload.validated_data["status"],
                self._actor(request),
                notes=payload.validated_data["notes"],
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Production commands
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="sub-processes")
    def sub_processes(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/sub-processes/  ``{"stage", "sub_process"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = CompleteSubProcessSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return _bad_version()

        try:
            order = self._service.complete_sub_process(
                pk,
                payload.validated_data["stage"],
                payload.validated_data["sub_process"],
                self._actor(request),
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def delivery(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/delivery/  ``{"mode", "shipment_company", "address"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = ChooseDeliverySerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
            dto = ChooseDeliveryDTO(**payload.validated_data)
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ValueError:
            return _bad_version()

        try:
            order = self._service.choose_delivery_mode(
                pk, dto, self._actor(request), expected_version=version
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def courier(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/courier/

        A courier calling without ``courier_id`` claims the order.
        """
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = AssignCourierSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return _bad_version()

        actor = self._actor(request)
        courier_id = payload.validated_data.get("courier_id") or actor.id
        try:
            order = self._service.assign_courier(
                pk,
                courier_id,
                actor,
                shipment_label=payload.validated_data.get("shipment_label"),
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def assign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/assign/  ``{"assignee_id"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = AssignSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return _bad_version()

        try:
            order = self._service.assign(
                pk,
                payload.validated_data["assignee_id"],
                self._actor(request),
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def attachments(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/attachments/  ``{"stage", "kind", "reference"}``

        Records a file or link that was stored elsewhere.  Independent of
        any status change that follows.
        """
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = AttachmentSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        try:
            order = self._service.record_attachment(
                pk, data["stage"], data["kind"], data["reference"], self._actor(request)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def comments(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/comments/  ``{"text"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = CommentSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        try:
            order = self._service.add_comment(
                pk, payload.validated_data["text"], self._actor(request)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # History and change polling
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        try:
            entries = self._service.get_history(pk, self._actor(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(AuditEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=["get"])
    def changes(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/changes/?since=V"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        try:
            since = int(request.query_params.get("since", ""))
        except ValueError:
            return Response(
                {"detail": "Query parameter 'since' must be an integer version."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            self._service.get_order(pk, self._actor(request))
            result = self._service.has_changed_since(pk, since)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(result.model_dump(mode="json"))
