"""Order repository interface.

Extends ``IVersionedRepository[Order]`` with what the Order aggregate
needs beyond compare-and-set persistence: initial insertion, change
polling and audit history.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IVersionedRepository

if TYPE_CHECKING:
    from modules.core.models import AuditEntry
    from modules.orders.models import Order


class IOrderRepository(IVersionedRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, entity: Order) -> Order:
        """Insert a new order at version 1 with its staged events and audit entries."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders with optional filters."""

    @abstractmethod
    def get_history(self, id: str) -> List[AuditEntry]:
        """Audit entries for the order, oldest first."""
