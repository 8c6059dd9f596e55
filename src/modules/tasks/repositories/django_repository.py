"""Django ORM repositories for tasks and claims.

Both aggregates are written with the same compare-and-set update as
orders, through ``VersionedDjangoRepository``.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.repositories.interfaces import IVersionedRepository
from modules.core.versioning import create_versioned, save_versioned
from modules.tasks.models import Claim, Task

logger = structlog.get_logger(__name__)


class VersionedDjangoRepository(IVersionedRepository):
    """Generic repository for a soft-deletable ``VersionedModel``."""

    model: ClassVar[Type[models.Model]]
    mutable_fields: ClassVar[Tuple[str, ...]]

    def get_by_id(self, id: str):
        try:
            return self.model.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str):
        try:
            return self.model.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_version(self, id: str) -> Optional[int]:
        try:
            return (
                self.model.objects.alive()
                .filter(id=id)
                .values_list("version", flat=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List:
        queryset = self.model.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def create(self, entity):
        create_versioned(entity)
        logger.info(
            f"{self.model._meta.model_name}.created", id=str(entity.id)
        )
        return entity

    @transaction.atomic
    def save(self, entity):
        save_versioned(entity, self.mutable_fields)
        logger.info(
            f"{self.model._meta.model_name}.saved",
            id=str(entity.id),
            version=entity.version,
        )
        return entity


class TaskDjangoRepository(VersionedDjangoRepository):
    model = Task
    mutable_fields = (
        "status",
        "assigned_to",
        "priority",
        "due_date",
        "completed_at",
        "completion_notes",
    )


class ClaimDjangoRepository(VersionedDjangoRepository):
    model = Claim
    mutable_fields = ("status", "assigned_to", "resolution", "resolved_at", "resolved_by")
