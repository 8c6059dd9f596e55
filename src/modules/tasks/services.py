"""Task and claim service layer (Use Cases).

Assignment and status changes follow the same unit of work as orders:
lock the row, check the caller's expected version, apply the change,
then write back with compare-and-set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Type

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.actors import Role, find_actor
from modules.core.assignments import AssignmentManager
from modules.core.audit import audit_log
from modules.core.exceptions import NotFound, Unauthorized
from modules.core.versioning import check_expected_version
from modules.orders.exceptions import InvalidTransition, OrderNotFound, PreconditionNotMet
from modules.orders.models import Order
from modules.tasks.constants import (
    CLAIM_TRANSITIONS,
    TASK_TRANSITIONS,
    ClaimStatus,
    TaskStatus,
)
from modules.tasks.exceptions import ClaimNotFound, TaskNotFound
from modules.tasks.models import Claim, Task

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.core.repositories.interfaces import IVersionedRepository
    from modules.tasks.dtos import CreateClaimDTO, CreateTaskDTO

logger = structlog.get_logger(__name__)


class _AssignableService:
    not_found: Type[NotFound]
    label: str
    transitions: Dict[str, Set[str]]

    def __init__(
        self,
        repository: IVersionedRepository,
        assignments: Optional[AssignmentManager] = None,
    ) -> None:
        self._repo = repository
        self._assignments = assignments or AssignmentManager()

    def get(self, id: str):
        entity = self._repo.get_by_id(id)
        if not entity:
            raise self.not_found(f"{self.label} {id} not found.")
        return entity

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List:
        return self._repo.list(filters)

    @transaction.atomic
    def assign(
        self,
        id: str,
        assignee_id: str,
        actor: Actor,
        expected_version: Optional[int] = None,
    ):
        """Hand the item to *assignee_id*, overwriting any previous assignee.

        Raises:
            TaskNotFound / ClaimNotFound: unknown id.
            Unauthorized: the assigner is not a manager or admin.
            NotFound: the assignee is not an active user.
            ConcurrentModification: stale ``expected_version`` or a lost race.
        """
        entity = self._repo.get_for_update(id)
        if not entity:
            raise self.not_found(f"{self.label} {id} not found.")
        check_expected_version(entity, expected_version)
        if not actor.is_supervisor:
            raise Unauthorized("Only managers can assign work.")

        assignee = find_actor(assignee_id)
        if assignee is None:
            raise NotFound(f"User {assignee_id} not found.")
        if assignee.role == Role.CLIENT:
            raise PreconditionNotMet(f"User {assignee_id} is a client, not staff.")

        if self._assignments.assign(entity, assignee.id, actor):
            self._after_assign(entity, actor)
            self._repo.save(entity)
        return entity

    @transaction.atomic
    def change_status(
        self,
        id: str,
        target_status: str,
        actor: Actor,
        notes: str = "",
        expected_version: Optional[int] = None,
    ):
        """Move the item to *target_status*; repeating the current status is a no-op.

        Raises:
            TaskNotFound / ClaimNotFound: unknown id.
            InvalidTransition: terminal item or target not reachable.
            Unauthorized: the actor may not make this change.
            ConcurrentModification: stale ``expected_version`` or a lost race.
        """
        entity = self._repo.get_for_update(id)
        if not entity:
            raise self.not_found(f"{self.label} {id} not found.")
        check_expected_version(entity, expected_version)

        current = entity.status
        log = logger.bind(
            subject_id=str(entity.pk),
            from_status=current,
            to_status=target_status,
            actor_id=actor.id,
        )
        if not self.transitions.get(current):
            raise InvalidTransition(
                f"{self.label} is {current}; no further status changes are allowed."
            )
        if target_status not in self.transitions:
            raise InvalidTransition(
                f"Unknown status '{target_status}'. "
                f"Expected one of: {', '.join(self.transitions)}."
            )
        self._authorize_status_change(entity, target_status, actor)
        if target_status == current:
            log.info(f"{self.label.lower()}.status_unchanged")
            return entity
        if target_status not in self.transitions[current]:
            raise InvalidTransition(
                f"Cannot move a {self.label.lower()} from {current} to {target_status}."
            )

        entity.status = target_status
        self._apply_status(entity, target_status, actor, notes)
        details = f"{current} to {target_status}"
        if notes:
            details += f": {notes}"
        audit_log.record(entity, "Status Changed", actor, details)
        self._repo.save(entity)
        log.info(f"{self.label.lower()}.status_changed")
        return entity

    def _after_assign(self, entity, actor: Actor) -> None:
        pass

    def _authorize_status_change(self, entity, target_status: str, actor: Actor) -> None:
        raise NotImplementedError

    def _apply_status(self, entity, target_status: str, actor: Actor, notes: str) -> None:
        pass


class TaskService(_AssignableService):
    not_found = TaskNotFound
    label = "Task"
    transitions = TASK_TRANSITIONS

    @transaction.atomic
    def create_task(self, dto: CreateTaskDTO, actor: Actor) -> Task:
        if not actor.is_staff:
            raise Unauthorized("Only staff can create tasks.")
        order = None
        if dto.order_id:
            order = Order.objects.alive().filter(id=dto.order_id).first()
            if order is None:
                raise OrderNotFound(f"Order {dto.order_id} not found.")
        task = Task(
            title=dto.title,
            description=dto.description,
            order=order,
            priority=dto.priority,
            due_date=dto.due_date,
            created_by=actor.id,
        )
        audit_log.record(task, "Task Created", actor, task.title)
        self._repo.create(task)
        logger.info("task.submitted", task_id=str(task.id), actor_id=actor.id)
        return task

    def _authorize_status_change(self, task: Task, target_status: str, actor: Actor) -> None:
        if actor.is_supervisor:
            return
        if target_status == TaskStatus.CANCELLED:
            raise Unauthorized("Only managers can cancel tasks.")
        if not task.assigned_to or task.assigned_to != actor.id:
            raise Unauthorized("Only the assignee or a manager can update this task.")

    def _apply_status(self, task: Task, target_status: str, actor: Actor, notes: str) -> None:
        if target_status == TaskStatus.COMPLETED:
            task.completed_at = timezone.now()
            task.completion_notes = notes


class ClaimService(_AssignableService):
    not_found = ClaimNotFound
    label = "Claim"
    transitions = CLAIM_TRANSITIONS

    @transaction.atomic
    def create_claim(self, dto: CreateClaimDTO, actor: Actor) -> Claim:
        """Clients raise claims on their own orders; staff on any order."""
        order = Order.objects.alive().select_related("client").filter(id=dto.order_id).first()
        if order is None:
            raise OrderNotFound(f"Order {dto.order_id} not found.")
        if actor.role == Role.CLIENT:
            if not order.client.is_owned_by(actor.id):
                raise OrderNotFound(f"Order {dto.order_id} not found.")
        elif not actor.is_staff:
            raise Unauthorized(f"Role '{actor.role}' cannot raise claims.")

        claim = Claim(
            order=order,
            title=dto.title,
            description=dto.description,
            claim_type=dto.claim_type,
            created_by=actor.id,
        )
        audit_log.record(claim, "Claim Created", actor, claim.title)
        self._repo.create(claim)
        logger.info("claim.submitted", claim_id=str(claim.id), actor_id=actor.id)
        return claim

    def _after_assign(self, claim: Claim, actor: Actor) -> None:
        if claim.status == ClaimStatus.SUBMITTED:
            claim.status = ClaimStatus.UNDER_REVIEW
            audit_log.record(
                claim,
                "Status Changed",
                actor,
                f"{ClaimStatus.SUBMITTED} to {ClaimStatus.UNDER_REVIEW}",
            )

    def _authorize_status_change(self, claim: Claim, target_status: str, actor: Actor) -> None:
        if not actor.is_staff:
            raise Unauthorized(f"Role '{actor.role}' cannot update claim status.")

    def _apply_status(self, claim: Claim, target_status: str, actor: Actor, notes: str) -> None:
        if target_status in (ClaimStatus.RESOLVED, ClaimStatus.REJECTED):
            claim.resolution = notes
            claim.resolved_at = timezone.now()
            claim.resolved_by = actor.id
