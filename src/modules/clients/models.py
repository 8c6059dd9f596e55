"""Client model.

A client is the shop customer who submits orders.  Its registered
``address`` is the default delivery destination for direct handover and
client self-collection.  ``user_ref`` links the record to the login that
acts as ``Role.CLIENT``; clients may only act on their own orders.
"""

from __future__ import annotations

import structlog
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Client(SoftDeleteModel):
    """Client aggregate root.

    ``address`` is stored as a structured JSON object with the keys
    ``street``, ``city``, ``state``, ``postal_code`` and ``country``
    (see ``modules.clients.dtos.AddressDTO``).
    """

    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    company = models.CharField(max_length=255, blank=True, default="")
    address = models.JSONField(default=dict, blank=True)
    user_ref = models.CharField(max_length=64, unique=True, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "clients"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="clients_created_idx"),
            models.Index(fields=["is_active"], name="clients_active_idx"),
        ]

    @property
    def has_address(self) -> bool:
        return any(str(value).strip() for value in (self.address or {}).values())

    def is_owned_by(self, actor_id: str) -> bool:
        """``True`` when *actor_id* is the login attached to this client."""
        return bool(self.user_ref) and self.user_ref == actor_id

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"
