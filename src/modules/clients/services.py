"""Client service layer (Use Cases)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.clients.exceptions import ClientAlreadyExists, ClientNotFound
from modules.clients.models import Client
from modules.core.exceptions import Unauthorized

if TYPE_CHECKING:
    from modules.clients.dtos import CreateClientDTO
    from modules.clients.repositories.interfaces import IClientRepository
    from modules.core.actors import Actor

logger = structlog.get_logger(__name__)


class ClientService:
    """Application service for Client use-cases."""

    def __init__(self, repository: IClientRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def register_client(self, dto: CreateClientDTO, actor: Actor) -> Client:
        """Register a client.

        Staff register any client; a client login may only register itself.

        Raises:
            Unauthorized: a client tried to register somebody else.
            ClientAlreadyExists: email or login already registered.
        """
        log = logger.bind(email=dto.email, actor_id=actor.id)

        user_ref = dto.user_ref
        if not actor.is_staff:
            if user_ref not in (None, actor.id):
                raise Unauthorized("Clients can only register themselves.")
            user_ref = actor.id

        if self._repo.get_by_email(dto.email):
            log.warning("client.duplicate_email")
            raise ClientAlreadyExists("Email already registered.")
        if user_ref and self._repo.get_by_user_ref(user_ref):
            log.warning("client.duplicate_login")
            raise ClientAlreadyExists("This login already has a client profile.")

        client = Client(
            name=dto.name,
            email=dto.email,
            phone=dto.phone,
            company=dto.company,
            address=dto.address.model_dump(),
            user_ref=user_ref,
        )
        client = self._repo.save(client)
        log.info("client.registered", client_id=str(client.id))
        return client

    def get_client(self, id: str) -> Client:
        """Raises ``ClientNotFound`` if the client does not exist."""
        client = self._repo.get_by_id(id)
        if not client:
            raise ClientNotFound(f"Client {id} not found.")
        return client

    def list_clients(self, filters: Optional[Dict[str, Any]] = None) -> List[Client]:
        return self._repo.list(filters)
