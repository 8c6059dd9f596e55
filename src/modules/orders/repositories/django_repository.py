"""Django ORM implementation of the Order repository.

Every write of an existing order is a compare-and-set on ``version``
(``modules.core.versioning.save_versioned``).  Domain events collected on
the aggregate are written to the outbox, and staged audit entries are
inserted, inside the same transaction as the snapshot.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import AuditEntry, AuditSubject, OutboxEvent
from modules.core.versioning import create_versioned, save_versioned
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

# Columns a command may change.  Identity and creation data are never
# rewritten by the compare-and-set update.
MUTABLE_FIELDS = (
    "status",
    "status_before_hold",
    "assigned_to",
    "stages",
    "design_links",
    "files",
    "comments",
    "progress",
)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a live order with its client (single JOIN).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.alive().select_related("client").filter(id=id).first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.alive()
                .select_for_update()
                .select_related("client")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_version(self, id: str) -> Optional[int]:
        try:
            return (
                Order.objects.alive()
                .filter(id=id)
                .values_list("version", flat=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders.

        Supported filter keys are any ORM lookups, e.g. ``status``,
        ``client_id``, ``assigned_to``.
        """
        queryset = Order.objects.alive().select_related("client")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_history(self, id: str) -> List[AuditEntry]:
        return list(
            AuditEntry.objects.filter(
                subject_type=AuditSubject.ORDER, subject_id=id
            ).order_by("timestamp", "id")
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, entity: Order) -> Order:
        create_versioned(entity)
        event_count = self._write_outbox(entity)
        logger.info(
            "order.created",
            order_id=str(entity.id),
            order_number=entity.order_number,
            event_count=event_count,
        )
        return entity

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist a changed order if nobody else wrote it since it was loaded.

        Raises:
            ConcurrentModification: the stored version moved on.
        """
        save_versioned(entity, MUTABLE_FIELDS)
        event_count = self._write_outbox(entity)
        logger.info(
            "order.saved",
            order_id=str(entity.id),
            version=entity.version,
            event_count=event_count,
        )
        return entity

    def _write_outbox(self, entity: Order) -> int:
        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()
        return len(events)


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
