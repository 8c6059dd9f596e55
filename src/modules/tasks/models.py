"""Task and Claim models.

Both are small assignable work items tracked next to orders.  They share
the order's rules for assignment (one assignee, overwrite on reassign),
auditing and compare-and-set writes on ``version``.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import AuditSubject, AuditTrailMixin, SoftDeleteModel, VersionedModel
from modules.tasks.constants import ClaimStatus, ClaimType, TaskPriority, TaskStatus


class Task(AuditTrailMixin, VersionedModel, SoftDeleteModel):
    """Internal to-do, optionally attached to an order."""

    audit_subject = AuditSubject.TASK

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tasks",
    )
    status = models.CharField(
        max_length=20, choices=TaskStatus.choices, default=TaskStatus.PENDING
    )
    priority = models.CharField(
        max_length=10, choices=TaskPriority.choices, default=TaskPriority.NORMAL
    )
    due_date = models.DateField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completion_notes = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=64, blank=True, default="")
    assigned_to = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "tasks"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["assigned_to"], name="tasks_assignee_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"


class Claim(AuditTrailMixin, VersionedModel, SoftDeleteModel):
    """Complaint raised by a client about one of their orders."""

    audit_subject = AuditSubject.CLAIM

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="claims",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    claim_type = models.CharField(
        max_length=20, choices=ClaimType.choices, default=ClaimType.OTHER
    )
    status = models.CharField(
        max_length=20, choices=ClaimStatus.choices, default=ClaimStatus.SUBMITTED
    )
    resolution = models.TextField(blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.CharField(max_length=64, blank=True, default="")
    created_by = models.CharField(max_length=64, blank=True, default="")
    assigned_to = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        db_table = "claims"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["assigned_to"], name="claims_assignee_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"
