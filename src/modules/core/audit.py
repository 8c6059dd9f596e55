"""Append-only audit log.

``AuditLog.record`` stages an ``AuditEntry`` on the aggregate; the
repository inserts staged entries alongside the versioned snapshot write.
Nothing in this module (or anywhere else) edits or removes an entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog
from django.utils import timezone

from modules.core.models import AuditEntry

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.core.models import AuditTrailMixin

logger = structlog.get_logger(__name__)


class AuditLog:
    """Records who did what, and when, against an auditable aggregate."""

    def record(
        self,
        entity: AuditTrailMixin,
        action: str,
        actor: Actor,
        details: str = "",
    ) -> AuditEntry:
        entry = AuditEntry(
            subject_type=entity.audit_subject,
            subject_id=entity.pk,
            action=action,
            actor_id=actor.id,
            actor_role=str(actor.role),
            details=details,
            timestamp=timezone.now(),
        )
        entity.stage_audit_entry(entry)
        logger.debug(
            "audit.staged",
            subject_type=entity.audit_subject,
            subject_id=str(entity.pk),
            action=action,
            actor_id=actor.id,
        )
        return entry

    def entries_for(self, entity: AuditTrailMixin) -> List[AuditEntry]:
        """Persisted entries for *entity*, oldest first."""
        return list(
            AuditEntry.objects.filter(
                subject_type=entity.audit_subject, subject_id=entity.pk
            ).order_by("timestamp", "id")
        )


audit_log = AuditLog()
