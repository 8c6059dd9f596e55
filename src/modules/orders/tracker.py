"""Sub-process bookkeeping.

``SubProcessTracker`` marks checklist items done and derives whether the
parent stage is finished.  It never touches ``order.status``: finishing the
last prepress step makes the Prepress stage Completed, and moving the order
on to Ready for Delivery is a separate, separately audited command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.utils import timezone

from modules.core.audit import AuditLog, audit_log
from modules.core.exceptions import Unauthorized
from modules.orders.constants import StageStatus, SubProcessStatus
from modules.orders.events import StageCompleted, SubProcessCompleted
from modules.orders.exceptions import PreconditionNotMet
from modules.orders.stage_state import SubProcessState
from modules.orders.stages import STAGES, StageRegistry

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class SubProcessTracker:
    def __init__(
        self,
        registry: StageRegistry = STAGES,
        audit: Optional[AuditLog] = None,
    ) -> None:
        self._registry = registry
        self._audit = audit or audit_log

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def missing(self, order: Order, stage_name: str) -> List[str]:
        """Required sub-processes of *stage_name* not yet completed, in registry order."""
        definition = self._registry.get(stage_name)
        state = order.get_stage(stage_name)
        return [
            name
            for name in definition.sub_processes
            if not state.sub_process(name).is_completed
        ]

    def is_stage_complete(self, order: Order, stage_name: str) -> bool:
        return order.get_stage(stage_name).is_completed

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def complete(
        self,
        order: Order,
        stage_name: str,
        sub_process_name: str,
        actor: Actor,
    ) -> bool:
        """Mark *sub_process_name* Completed by *actor*.

        Returns ``False`` when it was already completed: a retried request
        changes nothing and records nothing.

        Raises:
            UnknownSubProcess: stage or sub-process name not in the registry.
            Unauthorized: the actor's role does not operate this stage.
            PreconditionNotMet: the order is not in this stage, or the
                stage is already closed.
        """
        definition = self._registry.sub_process(stage_name, sub_process_name)
        log = logger.bind(
            order_id=str(order.pk),
            stage=stage_name,
            sub_process=sub_process_name,
            actor_id=actor.id,
        )

        if actor.role not in definition.operator_roles:
            log.warning("order.sub_process_unauthorized", role=str(actor.role))
            raise Unauthorized(
                f"Role '{actor.role}' cannot complete {definition.label.lower()} "
                "sub-processes."
            )

        state = order.get_stage(stage_name)
        if state.sub_process(sub_process_name).is_completed:
            log.info("order.sub_process_already_completed")
            return False

        if order.status not in definition.working_statuses:
            allowed = " or ".join(sorted(definition.working_statuses))
            raise PreconditionNotMet(
                f"Cannot complete '{sub_process_name}': order is {order.status}, "
                f"it must be {allowed}."
            )
        if definition.checklist_gates_completion and state.is_completed:
            raise PreconditionNotMet(
                f"Cannot complete '{sub_process_name}': the "
                f"{definition.label} stage is already completed."
            )

        now = timezone.now()
        sub_processes = dict(state.sub_processes)
        sub_processes[sub_process_name] = SubProcessState(
            status=SubProcessStatus.COMPLETED,
            completed_at=now,
            completed_by=actor.id,
        )
        update = {"sub_processes": sub_processes}
        if state.status == StageStatus.NOT_STARTED:
            update.update(status=StageStatus.IN_PROGRESS, start_date=now)
        state = state.model_copy(update=update)

        self._audit.record(
            order,
            "Sub-process Completed",
            actor,
            f"{definition.label}: {sub_process_name}",
        )
        order.add_domain_event(
            SubProcessCompleted(
                aggregate_id=order.pk,
                stage=stage_name,
                sub_process=sub_process_name,
                actor_id=actor.id,
            )
        )

        remaining = [
            name
            for name in definition.sub_processes
            if not state.sub_process(name).is_completed
        ]
        if definition.checklist_gates_completion and not remaining:
            state = state.model_copy(
                update={
                    "status": StageStatus.COMPLETED,
                    "completion_date": now,
                    "completed_by": actor.id,
                }
            )
            self._audit.record(
                order,
                "Stage Completed",
                actor,
                f"{definition.label} stage completed",
            )
            order.add_domain_event(
                StageCompleted(aggregate_id=order.pk, stage=stage_name, actor_id=actor.id)
            )
            log.info("order.stage_completed")

        order.put_stage(stage_name, state)
        log.info("order.sub_process_completed", remaining=remaining)
        return True


sub_process_tracker = SubProcessTracker()
