"""Django ORM implementation of the Client repository.

Methods return ``None`` for missing rows instead of raising: the Service
Layer decides how to translate a missing entity into an API response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.clients.models import Client
from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


class ClientDjangoRepository(IClientRepository):
    """Concrete Client repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Client]:
        """Retrieve a live client by primary key (``None`` for bad UUIDs)."""
        try:
            return Client.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Client]:
        queryset = Client.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Client) -> Client:
        is_new = entity._state.adding
        entity.save()
        logger.info("client.saved", client_id=str(entity.id), is_new=is_new)
        return entity

    def get_by_email(self, email: str) -> Optional[Client]:
        return Client.objects.filter(email__iexact=email).first()

    def get_by_user_ref(self, user_ref: str) -> Optional[Client]:
        return Client.objects.alive().filter(user_ref=user_ref).first()
