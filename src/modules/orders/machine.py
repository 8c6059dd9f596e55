"""Order fulfillment state machine.

``OrderStateMachine`` is the only code that changes ``Order.status``.  It
consults the canonical ``VALID_TRANSITIONS`` table, the role table, the
sub-process tracker and the delivery router, then applies the move,
refreshes the cached progress and stages an audit entry.  Persistence is
the caller's job: nothing here touches the database.

Checks run in a fixed order so the error a caller sees is predictable:

1. terminal status                 -> ``InvalidTransition``
2. target not in the table         -> ``InvalidTransition``
3. role not allowed                -> ``Unauthorized``
4. precondition not satisfied      -> ``PreconditionNotMet``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.utils import timezone

from modules.core.actors import Role
from modules.core.audit import AuditLog, audit_log
from modules.core.exceptions import Unauthorized
from modules.orders.constants import (
    RESUME_ROLES,
    TERMINAL_STATES,
    TRANSITION_ROLES,
    VALID_TRANSITIONS,
    AttachmentKind,
    OrderStatus,
    StageName,
    StageStatus,
)
from modules.orders.delivery import DeliveryRouter, delivery_router
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import InvalidTransition, PreconditionNotMet
from modules.orders.progress import ProgressCalculator, progress_calculator
from modules.orders.stage_state import Address, StageState, SubProcessState, dump_stages
from modules.orders.stages import STAGES, StageRegistry
from modules.orders.tracker import SubProcessTracker, sub_process_tracker

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class OrderStateMachine:
    def __init__(
        self,
        registry: StageRegistry = STAGES,
        tracker: Optional[SubProcessTracker] = None,
        router: Optional[DeliveryRouter] = None,
        progress: Optional[ProgressCalculator] = None,
        audit: Optional[AuditLog] = None,
    ) -> None:
        self._registry = registry
        self._tracker = tracker or sub_process_tracker
        self._router = router or delivery_router
        self._progress = progress or progress_calculator
        self._audit = audit or audit_log

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def allowed_targets(self, order: Order) -> set[str]:
        """Statuses reachable from the order's current status."""
        if order.status == OrderStatus.ON_HOLD:
            targets = {OrderStatus.CANCELLED}
            if order.status_before_hold:
                targets.add(order.status_before_hold)
            return targets
        return set(VALID_TRANSITIONS.get(order.status, set()))

    def available_transitions(self, order: Order, actor: Actor) -> list[str]:
        """Targets *actor* could request right now, preconditions aside."""
        if order.status in TERMINAL_STATES:
            return []
        return [
            target
            for target in OrderStatus.values
            if target in self.allowed_targets(order)
            and self._is_authorized(order, target, actor)
        ]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def open(self, order: Order, actor: Actor) -> Order:
        """Initialise a freshly submitted order: every stage Not Started."""
        order.status = OrderStatus.SUBMITTED
        order.status_before_hold = ""
        order.stages = dump_stages(
            {
                definition.name: StageState(
                    sub_processes={
                        name: SubProcessState() for name in definition.sub_processes
                    }
                )
                for definition in self._registry
            }
        )
        order.progress = self._progress.percentage(order)
        self._audit.record(order, "Order Created", actor, order.title)
        order.add_domain_event(
            OrderCreated(aggregate_id=order.pk, client_id=str(order.client_id))
        )
        return order

    def transition(
        self,
        order: Order,
        target_status: str,
        actor: Actor,
        notes: str = "",
    ) -> Order:
        """Move *order* to *target_status* on behalf of *actor*.

        Raises:
            InvalidTransition: terminal order or target not reachable.
            Unauthorized: the actor's role may not request this move.
            PreconditionNotMet: the order is not ready for the move.
        """
        current = order.status
        log = logger.bind(
            order_id=str(order.pk),
            from_status=current,
            to_status=target_status,
            actor_id=actor.id,
        )

        if current in TERMINAL_STATES:
            log.warning("order.transition_from_terminal")
            raise InvalidTransition(
                f"Order is {current}; no further status changes are allowed."
            )
        if target_status not in OrderStatus.values:
            raise InvalidTransition(
                f"Unknown status '{target_status}'. "
                f"Expected one of: {', '.join(OrderStatus.values)}."
            )
        if target_status not in self.allowed_targets(order):
            log.warning("order.invalid_transition")
            raise InvalidTransition(
                f"Cannot move an order from {current} to {target_status}."
            )
        if not self._is_authorized(order, target_status, actor):
            log.warning("order.transition_unauthorized", role=str(actor.role))
            raise Unauthorized(
                f"Role '{actor.role}' cannot move an order to {target_status}."
            )
        self._check_preconditions(order, target_status)

        resuming = current == OrderStatus.ON_HOLD
        if target_status == OrderStatus.ON_HOLD:
            order.status_before_hold = current
        elif resuming:
            order.status_before_hold = ""
        if not resuming and target_status != current:
            self._apply_stage_effects(order, target_status, actor)

        order.status = target_status
        order.progress = self._progress.percentage(order)

        details = f"{current} to {target_status}"
        if notes:
            details += f": {notes}"
        self._audit.record(order, "Status Changed", actor, details)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.pk,
                old_status=current,
                new_status=target_status,
                actor_id=actor.id,
            )
        )
        if target_status == OrderStatus.CANCELLED:
            order.add_domain_event(OrderCancelled(aggregate_id=order.pk, actor_id=actor.id))

        log.info("order.transitioned", progress=order.progress)
        return order

    def complete_sub_process(
        self,
        order: Order,
        stage_name: str,
        sub_process_name: str,
        actor: Actor,
    ) -> bool:
        """Tick one checklist item; never advances ``order.status``.

        Returns ``False`` for an already-completed sub-process.
        """
        changed = self._tracker.complete(order, stage_name, sub_process_name, actor)
        if changed:
            order.progress = self._progress.percentage(order)
        return changed

    def choose_delivery_mode(
        self,
        order: Order,
        mode: str,
        actor: Actor,
        shipment_company: Optional[str] = None,
        address: Optional[Address] = None,
    ) -> Order:
        """Pick the hand-off path; ``order.status`` is left unchanged."""
        self._router.choose_mode(
            order, mode, actor, shipment_company=shipment_company, address=address
        )
        return order

    def assign_courier(
        self,
        order: Order,
        courier_id: str,
        actor: Actor,
        shipment_label: Optional[str] = None,
    ) -> bool:
        return self._router.assign_courier(order, courier_id, actor, shipment_label)

    def record_attachment(
        self,
        order: Order,
        stage_name: str,
        kind: str,
        reference: str,
        actor: Actor,
    ) -> bool:
        """Note that an attachment satisfying *stage_name* exists.

        The bytes live elsewhere; only the reference is kept.  Recording
        the same reference twice for a stage is a no-op returning ``False``.
        Design files and links come only from roles that may mark Design Done.  A later
        transition that fails never removes what was recorded here.
        """
        definition = self._registry.get(stage_name)
        if kind not in AttachmentKind.values:
            raise PreconditionNotMet(
                f"Unknown attachment kind '{kind}'. "
                f"Expected one of: {', '.join(AttachmentKind.values)}."
            )
        reference = (reference or "").strip()
        if not reference:
            raise PreconditionNotMet("An attachment needs a file reference or a link.")
        if order.status in TERMINAL_STATES:
            raise PreconditionNotMet(f"Cannot attach files: order is {order.status}.")
        if actor.role == Role.CLIENT:
            if not order.client.is_owned_by(actor.id):
                raise Unauthorized("Clients can only attach files to their own orders.")
        elif not (actor.is_staff or actor.role == Role.COURIER):
            raise Unauthorized(f"Role '{actor.role}' cannot attach files.")
        if (
            definition.name == StageName.DESIGN
            and actor.role not in TRANSITION_ROLES[OrderStatus.DESIGN_DONE]
        ):
            raise Unauthorized(
                f"Role '{actor.role}' cannot record design files or links."
            )

        if order.has_attachment_reference(definition.name, reference):
            logger.info(
                "order.attachment_already_recorded",
                order_id=str(order.pk),
                stage=stage_name,
            )
            return False

        order.add_attachment(
            stage=definition.name,
            kind=kind,
            reference=reference,
            recorded_by=actor.id,
            recorded_at=timezone.now(),
        )
        label = "Design link" if kind == AttachmentKind.LINK else "File"
        self._audit.record(
            order,
            f"{label} Added",
            actor,
            f"{definition.label}: {reference}",
        )
        logger.info(
            "order.attachment_recorded",
            order_id=str(order.pk),
            stage=stage_name,
            kind=kind,
        )
        return True

    def add_comment(self, order: Order, text: str, actor: Actor) -> dict:
        text = (text or "").strip()
        if not text:
            raise PreconditionNotMet("A comment cannot be empty.")
        if actor.role == Role.CLIENT and not order.client.is_owned_by(actor.id):
            raise Unauthorized("Clients can only comment on their own orders.")
        comment = order.add_comment(text=text, author=actor.id, role=str(actor.role))
        self._audit.record(order, "Comment Added", actor, text[:200])
        return comment

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_authorized(self, order: Order, target: str, actor: Actor) -> bool:
        if order.status == OrderStatus.ON_HOLD and target != OrderStatus.CANCELLED:
            return actor.role in RESUME_ROLES
        if target == OrderStatus.COMPLETED:
            return self._router.may_complete(order, actor)
        if target == OrderStatus.CANCELLED:
            if actor.is_supervisor:
                return True
            return (
                actor.role == Role.CLIENT
                and order.status == OrderStatus.SUBMITTED
                and order.client.is_owned_by(actor.id)
            )
        return actor.role in TRANSITION_ROLES.get(target, frozenset())

    def _check_preconditions(self, order: Order, target: str) -> None:
        if target == OrderStatus.DESIGN_DONE:
            if not order.has_attachment(StageName.DESIGN):
                raise PreconditionNotMet(
                    "Cannot mark Design Done: no design file or link has been recorded."
                )
        elif target == OrderStatus.READY_FOR_DELIVERY:
            if not self._tracker.is_stage_complete(order, StageName.PREPRESS):
                missing = self._tracker.missing(order, StageName.PREPRESS)
                raise PreconditionNotMet(
                    "Cannot mark Ready for Delivery: prepress sub-processes "
                    f"incomplete ({', '.join(missing)})."
                )
            if self._router.delivery_info(order) is None:
                raise PreconditionNotMet(
                    "Cannot mark Ready for Delivery: no delivery mode has been chosen."
                )
        elif target == OrderStatus.COMPLETED:
            blocker = self._router.completion_blocker(order)
            if blocker:
                raise PreconditionNotMet(f"Cannot mark Completed: {blocker}.")

    def _apply_stage_effects(self, order: Order, target: str, actor: Actor) -> None:
        now = timezone.now()
        for definition in self._registry.completed_by(target):
            state = order.get_stage(definition.name)
            if state.is_completed:
                continue
            order.put_stage(
                definition.name,
                state.model_copy(
                    update={
                        "status": StageStatus.COMPLETED,
                        "start_date": state.start_date or now,
                        "completion_date": now,
                        "completed_by": actor.id,
                    }
                ),
            )
        for definition in self._registry.started_by(target):
            state = order.get_stage(definition.name)
            if state.status != StageStatus.NOT_STARTED:
                continue
            order.put_stage(
                definition.name,
                state.model_copy(
                    update={"status": StageStatus.IN_PROGRESS, "start_date": now}
                ),
            )


order_state_machine = OrderStateMachine()
