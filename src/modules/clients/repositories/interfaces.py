"""Client repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.clients.models import Client


class IClientRepository(IRepository["Client"]):
    """Repository contract for the Client aggregate."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Client]:
        """Retrieve a client by email address."""

    @abstractmethod
    def get_by_user_ref(self, user_ref: str) -> Optional[Client]:
        """Retrieve the client record linked to a login."""
