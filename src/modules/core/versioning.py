"""Compare-and-set persistence for ``VersionedModel`` aggregates.

``save_versioned`` issues ``UPDATE ... WHERE id = %s AND version = %s`` and
bumps the version.  When no row matches, somebody else wrote first and
``ConcurrentModification`` is raised; there is no last-write-wins fallback.
Staged audit entries are inserted inside the same transaction.
"""

from __future__ import annotations

from typing import Iterable

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import ConcurrentModification
from modules.core.models import AuditEntry, AuditTrailMixin, VersionedModel

logger = structlog.get_logger(__name__)


def check_expected_version(instance: VersionedModel, expected: int | None) -> None:
    """Reject a command issued against a stale view of *instance*."""
    if expected is not None and expected != instance.version:
        logger.warning(
            "versioning.stale_command",
            model=instance._meta.label,
            id=str(instance.pk),
            expected=expected,
            current=instance.version,
        )
        raise ConcurrentModification(
            f"{instance._meta.verbose_name.capitalize()} was modified by someone "
            f"else (you have version {expected}, current is {instance.version}). "
            "Reload and try again.",
            current_version=instance.version,
        )


@transaction.atomic
def create_versioned(instance: VersionedModel) -> VersionedModel:
    """Insert a brand-new aggregate at version 1 with its staged audit entries."""
    instance.version = 1
    instance.save(force_insert=True)
    _flush_audit_entries(instance)
    return instance


@transaction.atomic
def save_versioned(instance: VersionedModel, fields: Iterable[str]) -> VersionedModel:
    """Write *fields* of *instance* if, and only if, its version is unchanged."""
    model = type(instance)
    loaded_version = instance.version
    now = timezone.now()

    values = {name: getattr(instance, name) for name in fields}
    values["version"] = loaded_version + 1
    values["updated_at"] = now

    updated = model._default_manager.filter(
        pk=instance.pk, version=loaded_version
    ).update(**values)
    if not updated:
        current = (
            model._default_manager.filter(pk=instance.pk)
            .values_list("version", flat=True)
            .first()
        )
        logger.warning(
            "versioning.conflict",
            model=model._meta.label,
            id=str(instance.pk),
            loaded_version=loaded_version,
            current_version=current,
        )
        raise ConcurrentModification(
            f"{model._meta.verbose_name.capitalize()} {instance.pk} was modified "
            f"concurrently (loaded version {loaded_version}, now {current}). "
            "Reload and try again.",
            current_version=current,
        )

    instance.version = loaded_version + 1
    instance.updated_at = now
    _flush_audit_entries(instance)
    return instance


def _flush_audit_entries(instance: VersionedModel) -> None:
    if not isinstance(instance, AuditTrailMixin):
        return
    entries = instance.pending_audit_entries
    if entries:
        AuditEntry.objects.bulk_create(entries)
    instance.clear_audit_entries()
