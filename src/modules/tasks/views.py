"""Task and claim API views."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.actors import Actor, Role
from modules.core.api import domain_error_response, expected_version, invalid_id_response
from modules.core.exceptions import DomainError
from modules.tasks.dtos import CreateClaimDTO, CreateTaskDTO
from modules.tasks.models import Claim, Task
from modules.tasks.repositories.django_repository import (
    ClaimDjangoRepository,
    TaskDjangoRepository,
)
from modules.tasks.serializers import (
    AssignSerializer,
    ClaimSerializer,
    CreateClaimSerializer,
    CreateTaskSerializer,
    StatusChangeSerializer,
    TaskSerializer,
)
from modules.tasks.services import ClaimService, TaskService


class _AssignableViewSet(ListModelMixin, GenericViewSet):
    """Shared retrieve, ``assign`` and ``status`` actions for tasks and claims."""

    ordering = ["-created_at", "-id"]

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        try:
            entity = self._service.get(pk)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(self.get_serializer(entity).data)

    @action(detail=True, methods=["post"])
    def assign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/{tasks,claims}/{pk}/assign/  ``{"assignee_id"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = AssignSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return Response(
                {"detail": "Version must be an integer."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            entity = self._service.assign(
                pk,
                payload.validated_data["assignee_id"],
                Actor.from_user(request.user),
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(self.get_serializer(entity).data)

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/{tasks,claims}/{pk}/status/  ``{"status", "notes"}``"""
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        payload = StatusChangeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            version = expected_version(request)
        except ValueError:
            return Response(
                {"detail": "Version must be an integer."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            entity = self._service.change_status(
                pk,
                payload.validated_data["status"],
                Actor.from_user(request.user),
                notes=payload.validated_data["notes"],
                expected_version=version,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(self.get_serializer(entity).data)


class TaskViewSet(_AssignableViewSet):
    queryset = Task.objects.all()
    serializer_class = TaskSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = TaskService(repository=TaskDjangoRepository())

    def get_queryset(self):
        if Actor.from_user(self.request.user).role == Role.CLIENT:
            return Task.objects.none()
        return Task.objects.alive().order_by(*self.ordering)

    def create(self, request: Request) -> Response:
        """POST /api/v1/tasks/"""
        payload = CreateTaskSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            dto = CreateTaskDTO(**payload.validated_data)
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        try:
            task = self._service.create_task(dto, Actor.from_user(request.user))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class ClaimViewSet(_AssignableViewSet):
    queryset = Claim.objects.all()
    serializer_class = ClaimSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ClaimService(repository=ClaimDjangoRepository())

    def get_queryset(self):
        queryset = Claim.objects.alive().select_related("order__client")
        actor = Actor.from_user(self.request.user)
        if actor.role == Role.CLIENT:
            queryset = queryset.filter(order__client__user_ref=actor.id)
        return queryset.order_by(*self.ordering)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        if (invalid := invalid_id_response(pk)) is not None:
            return invalid
        claim = self.get_queryset().filter(id=pk).first()
        if claim is None:
            return Response(
                {"detail": f"Claim {pk} not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ClaimSerializer(claim).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/claims/"""
        payload = CreateClaimSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            dto = CreateClaimDTO(**payload.validated_data)
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        try:
            claim = self._service.create_claim(dto, Actor.from_user(request.user))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(ClaimSerializer(claim).data, status=status.HTTP_201_CREATED)
