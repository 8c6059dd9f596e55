"""Base abstract models and shared persistence primitives.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``SoftDeleteModel``: Extends BaseModel with soft-delete via ``deleted_at``.
- ``VersionedModel``: monotonically increasing ``version`` used as the
  compare-and-set key for every write (see ``modules.core.versioning``).
- ``AuditTrailMixin`` / ``AuditEntry``: append-only "who did what, when"
  records for orders, tasks and claims.
- ``OutboxEvent``: Transactional Outbox pattern for reliable domain events.

Design decisions:
- ``objects`` manager returns ALL records (unfiltered).  Use ``.alive()``
  explicitly to exclude soft-deleted rows.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
- Actor references are plain strings (weak references): staff and clients
  are owned by the authentication layer, not by this schema.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone

from modules.core.exceptions import ImmutableRecord

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Soft Delete infrastructure
# ---------------------------------------------------------------------------


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet with soft-delete helpers."""

    def alive(self) -> SoftDeleteQuerySet:
        """Return only non-deleted records."""
        return self.filter(deleted_at__isnull=True)

    def dead(self) -> SoftDeleteQuerySet:
        """Return only soft-deleted records."""
        return self.filter(deleted_at__isnull=False)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Bulk soft-delete: sets ``deleted_at`` + ``updated_at``."""
        now = timezone.now()
        count = self.alive().update(deleted_at=now, updated_at=now)
        return count, {self.model._meta.label: count}


class SoftDeleteManager(models.Manager):
    """Manager that exposes ``.alive()`` on the queryset."""

    def get_queryset(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db)

    def alive(self) -> SoftDeleteQuerySet:
        return self.get_queryset().alive()


class SoftDeleteModel(BaseModel):
    """Abstract model with soft-delete via a single ``deleted_at`` timestamp.

    - ``objects`` is **unfiltered** (returns all rows).
    - Use ``Model.objects.alive()`` to exclude soft-deleted rows.
    """

    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
        db_index=True,
    )

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        """Soft-delete this instance (no-op if already deleted)."""
        if self.is_deleted:
            return 0, {}
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at", "updated_at"])
        return 1, {self._meta.label: 1}


# ---------------------------------------------------------------------------
# Optimistic versioning
# ---------------------------------------------------------------------------


class VersionedModel(models.Model):
    """Abstract model carrying the compare-and-set ``version`` counter.

    ``version`` starts at 1 and is bumped by exactly one on every accepted
    write.  Writes go through ``modules.core.versioning.save_versioned``;
    a plain ``save()`` on an existing row would bypass the check.
    """

    version = models.PositiveIntegerField(default=1)

    class Meta:
        abstract = True


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


class AuditSubject(models.TextChoices):
    ORDER = "order", "Order"
    TASK = "task", "Task"
    CLAIM = "claim", "Claim"


class AuditTrailMixin:
    """Mixin for aggregates whose actions are recorded in the audit log.

    Entries are staged in memory by ``AuditLog.record`` and inserted by the
    repository in the same transaction as the aggregate snapshot, so a
    rejected write never leaves orphan history behind.
    """

    audit_subject: str = ""
    _pending_audit_entries: list[AuditEntry]

    def stage_audit_entry(self, entry: AuditEntry) -> None:
        if not hasattr(self, "_pending_audit_entries"):
            self._pending_audit_entries = []
        self._pending_audit_entries.append(entry)

    def clear_audit_entries(self) -> None:
        if hasattr(self, "_pending_audit_entries"):
            self._pending_audit_entries.clear()

    @property
    def pending_audit_entries(self) -> list[AuditEntry]:
        if not hasattr(self, "_pending_audit_entries"):
            self._pending_audit_entries = []
        return list(self._pending_audit_entries)


class AuditEntryQuerySet(models.QuerySet):
    """Append-only queryset: bulk updates and deletes are refused."""

    def update(self, **kwargs):
        raise ImmutableRecord("Audit entries cannot be updated.")

    def delete(self):
        raise ImmutableRecord("Audit entries cannot be deleted.")


class AuditEntry(BaseModel):
    """Immutable record of a state-changing action.

    It is the system of record for "completed by" attribution: stage fields
    on the aggregate may be overwritten, these rows never are.
    """

    subject_type = models.CharField(max_length=10, choices=AuditSubject.choices)
    subject_id = models.UUIDField()
    action = models.CharField(max_length=100)
    actor_id = models.CharField(max_length=64)
    actor_role = models.CharField(max_length=20, blank=True, default="")
    details = models.TextField(blank=True, default="")
    timestamp = models.DateTimeField(default=timezone.now)

    objects = AuditEntryQuerySet.as_manager()

    class Meta:
        db_table = "audit_entries"
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(
                fields=["subject_type", "subject_id", "timestamp"],
                name="audit_subject_ts_idx",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ImmutableRecord("Audit entries cannot be modified once written.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ImmutableRecord("Audit entries cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.subject_type}:{self.subject_id} {self.action} by {self.actor_id}"


# ---------------------------------------------------------------------------
# Transactional Outbox
# ---------------------------------------------------------------------------


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxEvent(BaseModel):
    """Transactional Outbox for reliable domain event delivery.

    Events are persisted in the **same database transaction** as the
    aggregate write that produced them.  A relay reads ``PENDING`` rows
    ordered by ``created_at`` and hands them to the broker.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(
                fields=["status", "created_at"],
                name="outbox_status_created_idx",
            ),
        ]

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "processed_at", "updated_at"])

    def mark_as_failed(self, error: str) -> None:
        self.status = EventStatus.FAILED
        self.error_message = error
        self.retry_count += 1
        self.save(update_fields=["status", "error_message", "retry_count", "updated_at"])

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"
