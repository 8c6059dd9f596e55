"""Order model.

The Order aggregate root carries its stage snapshot as JSON
(``stages``: stage name -> ``StageState``), the attachment references
recorded against it, and a ``version`` used for compare-and-set writes.

Invariants:
- ``status`` is one of ``OrderStatus``; Completed and Cancelled are terminal.
- ``status`` and ``stages`` change only through ``OrderStateMachine``.
- ``assigned_to`` changes only through ``AssignmentManager``.
- History is the audit log (``modules.core.models.AuditEntry``), never a
  field on this row.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import Any

import structlog
from django.db import models
from django.utils import timezone

from modules.core.models import AuditSubject, AuditTrailMixin, SoftDeleteModel, VersionedModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    AttachmentKind,
    OrderPriority,
    OrderStatus,
    OrderType,
)
from modules.orders.stage_state import StageState, dump_stages, load_stages
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, AuditTrailMixin, VersionedModel, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYMM-XXXXXX``).  The UUIDv7 ``id`` is used for all
    internal references and API lookups.
    """

    audit_subject = AuditSubject.ORDER

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    client: models.ForeignKey = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    title: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    order_type: models.CharField = models.CharField(
        max_length=30,
        choices=OrderType.choices,
        default=OrderType.NEW,
    )
    priority: models.CharField = models.CharField(
        max_length=10,
        choices=OrderPriority.choices,
        default=OrderPriority.NORMAL,
    )
    deadline: models.DateField = models.DateField(null=True, blank=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.SUBMITTED,
    )
    status_before_hold: models.CharField = models.CharField(
        max_length=20, choices=OrderStatus.choices, blank=True, default=""
    )
    specifications: models.JSONField = models.JSONField(default=dict, blank=True)
    assigned_to: models.CharField = models.CharField(
        max_length=64, blank=True, default=""
    )
    stages: models.JSONField = models.JSONField(default=dict, blank=True)
    design_links: models.JSONField = models.JSONField(default=list, blank=True)
    files: models.JSONField = models.JSONField(default=list, blank=True)
    comments: models.JSONField = models.JSONField(default=list, blank=True)
    progress: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["assigned_to"], name="orders_assignee_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Stage snapshot
    # ------------------------------------------------------------------

    @property
    def stage_states(self) -> dict[str, StageState]:
        return load_stages(self.stages)

    def get_stage(self, name: str) -> StageState:
        """Typed state of stage *name*; "Not Started" if never recorded."""
        return self.stage_states.get(name, StageState())

    def put_stage(self, name: str, state: StageState) -> None:
        stages = self.stage_states
        stages[name] = state
        self.stages = dump_stages(stages)

    # ------------------------------------------------------------------
    # Attachments and comments
    # ------------------------------------------------------------------

    def attachments(self) -> list[dict[str, Any]]:
        return list(self.design_links) + list(self.files)

    def has_attachment(self, stage: str) -> bool:
        return any(item.get("stage") == stage for item in self.attachments())

    def has_attachment_reference(self, stage: str, reference: str) -> bool:
        return any(
            item.get("stage") == stage and item.get("reference") == reference
            for item in self.attachments()
        )

    def add_attachment(
        self,
        stage: str,
        kind: str,
        reference: str,
        recorded_by: str,
        recorded_at: datetime,
    ) -> None:
        entry = {
            "stage": stage,
            "kind": kind,
            "reference": reference,
            "recorded_by": recorded_by,
            "recorded_at": recorded_at.isoformat(),
        }
        if kind == AttachmentKind.LINK:
            self.design_links = [*self.design_links, entry]
        else:
            self.files = [*self.files, entry]

    def add_comment(self, text: str, author: str, role: str) -> dict[str, Any]:
        comment = {
            "text": text,
            "author": author,
            "role": role,
            "created_at": timezone.now().isoformat(),
        }
        self.comments = [*self.comments, comment]
        return comment

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYMM-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%y%m}-{suffix}"

    def assign_order_number(self) -> None:
        if self.order_number:
            return
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            candidate = self.generate_order_number()
            if not Order.objects.filter(order_number=candidate).exists():
                self.order_number = candidate
                return
        raise RuntimeError(
            f"Failed to generate unique order_number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.assign_order_number()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"
