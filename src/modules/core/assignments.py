"""Single-assignee bookkeeping for orders, tasks and claims.

An entity has at most one ``assigned_to`` actor reference.  Reassignment
overwrites the previous value; there is no queue and no conflict
detection here.  Lost updates are prevented one level down, by the
versioned write the caller performs afterwards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from modules.core.actors import SUPERVISOR_ROLES
from modules.core.audit import AuditLog, audit_log
from modules.core.exceptions import Unauthorized

if TYPE_CHECKING:
    from modules.core.actors import Actor

logger = structlog.get_logger(__name__)


class AssignmentManager:
    """Applies assignment changes and records them in the audit log."""

    def __init__(self, audit: Optional[AuditLog] = None) -> None:
        self._audit = audit or audit_log

    def assign(self, entity, assignee_id: str, assigner: Actor) -> bool:
        """Point ``entity.assigned_to`` at *assignee_id*.

        Returns ``False`` when the entity is already assigned to that actor
        (nothing to persist), ``True`` otherwise.

        Raises:
            Unauthorized: the assigner is not a manager or admin.
        """
        log = logger.bind(
            subject=entity.audit_subject,
            subject_id=str(entity.pk),
            assignee_id=assignee_id,
            assigner_id=assigner.id,
        )
        if assigner.role not in SUPERVISOR_ROLES:
            log.warning("assignment.unauthorized", role=str(assigner.role))
            raise Unauthorized("Only managers can assign work.")

        previous = entity.assigned_to or ""
        if previous == assignee_id:
            log.info("assignment.unchanged")
            return False

        entity.assigned_to = assignee_id
        details = f"Assigned to {assignee_id}"
        if previous:
            details += f" (previously {previous})"
        self._audit.record(
            entity,
            f"{entity.audit_subject.capitalize()} Assigned",
            assigner,
            details,
        )
        log.info("assignment.changed", previous=previous or None)
        return True
