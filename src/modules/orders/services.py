"""Order service layer (Use Cases).

Every command is one unit of work against one order:

1. load the row under ``SELECT FOR UPDATE``;
2. reject the command if the caller's ``expected_version`` is stale;
3. let the domain components apply it (state machine, assignments);
4. write the snapshot back with compare-and-set on ``version``, together
   with outbox events and audit entries;
5. publish the domain events on the in-process bus after commit.

A command that changes nothing (an already-completed sub-process, an
unchanged assignee) writes nothing and does not bump the version.  The
service never retries a ``ConcurrentModification``; that is the caller's
decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.clients.exceptions import ClientNotFound, InactiveClient
from modules.core.actors import Role, find_actor
from modules.core.assignments import AssignmentManager
from modules.core.exceptions import NotFound, Unauthorized
from modules.core.versioning import check_expected_version
from modules.orders.dtos import OrderChangesDTO
from modules.orders.events import OrderAssigned
from modules.orders.exceptions import OrderNotFound, PreconditionNotMet
from modules.orders.machine import OrderStateMachine, order_state_machine
from modules.orders.models import Order
from modules.orders.stage_state import Address
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.clients.repositories.interfaces import IClientRepository
    from modules.core.actors import Actor
    from modules.core.models import AuditEntry
    from modules.orders.dtos import ChooseDeliveryDTO, CreateOrderDTO
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        client_repository: IClientRepository,
        state_machine: Optional[OrderStateMachine] = None,
        assignments: Optional[AssignmentManager] = None,
    ) -> None:
        self._order_repo = order_repository
        self._client_repo = client_repository
        self._machine = state_machine or order_state_machine
        self._assignments = assignments or AssignmentManager()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, actor: Optional[Actor] = None) -> Order:
        """Retrieve a single order.

        Clients only see their own orders; anybody else's reads as missing.

        Raises:
            OrderNotFound: if the order does not exist or is not visible.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (actor is not None and not self._can_see(order, actor)):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        filters: Optional[Dict[str, Any]] = None,
        actor: Optional[Actor] = None,
    ) -> List[Order]:
        filters = dict(filters or {})
        if actor is not None and actor.role == Role.CLIENT:
            filters["client__user_ref"] = actor.id
        return self._order_repo.list(filters)

    def get_history(self, order_id: str, actor: Optional[Actor] = None) -> List[AuditEntry]:
        """Audit entries for the order, oldest first."""
        order = self.get_order(order_id, actor)
        return self._order_repo.get_history(str(order.id))

    def has_changed_since(self, order_id: str, version: int) -> OrderChangesDTO:
        """Cheap client-pull check against the stored version.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        current = self._order_repo.get_version(order_id)
        if current is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return OrderChangesDTO(
            order_id=order_id,
            changed=current != version,
            version=current,
            poll_interval_seconds=settings.ORDER_POLL_INTERVAL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: Actor) -> Order:
        """Submit a new order for *dto.client_id*.

        Clients submit for themselves; staff may submit on a client's behalf.

        Raises:
            ClientNotFound: client does not exist.
            InactiveClient: client is inactive.
            Unauthorized: a client submitting for somebody else, or a courier.
        """
        log = logger.bind(client_id=str(dto.client_id), actor_id=actor.id)

        client = self._client_repo.get_by_id(str(dto.client_id))
        if not client:
            raise ClientNotFound(f"Client {dto.client_id} not found.")
        if actor.role == Role.CLIENT:
            if not client.is_owned_by(actor.id):
                raise Unauthorized("Clients can only submit orders for themselves.")
        elif not actor.is_staff:
            raise Unauthorized(f"Role '{actor.role}' cannot submit orders.")
        if not client.is_active:
            raise InactiveClient(f"Client {dto.client_id} is inactive.")

        order = Order(
            client=client,
            title=dto.title,
            description=dto.description,
            order_type=dto.order_type,
            priority=dto.priority,
            deadline=dto.deadline,
            specifications=dto.specifications,
        )
        self._machine.open(order, actor)
        events = order.domain_events
        order = self._order_repo.create(order)
        self._publish_on_commit(events)

        log.info("order.submitted", order_id=str(order.id))
        return order

    @transaction.atomic
    def transition(
        self,
        order_id: str,
        target_status: str,
        actor: Actor,
        notes: str = "",
        expected_version: Optional[int] = None,
    ) -> Order:
        """Move the order to *target_status* (see ``OrderStateMachine.transition``)."""
        order = self._load_for_update(order_id, expected_version)
        self._machine.transition(order, target_status, actor, notes)
        return self._commit(order)

    @transaction.atomic
    def complete_sub_process(
        self,
        order_id: str,
        stage_name: str,
        sub_process_name: str,
        actor: Actor,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._load_for_update(order_id, expected_version)
        if self._machine.complete_sub_process(order, stage_name, sub_process_name, actor):
            return self._commit(order)
        return order

    @transaction.atomic
    def choose_delivery_mode(
        self,
        order_id: str,
        dto: ChooseDeliveryDTO,
        actor: Actor,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._load_for_update(order_id, expected_version)
        address = Address(**dto.address.model_dump()) if dto.address else None
        self._machine.choose_delivery_mode(
            order,
            dto.mode,
            actor,
            shipment_company=dto.shipment_company,
            address=address,
        )
        return self._commit(order)

    @transaction.atomic
    def assign_courier(
        self,
        order_id: str,
        courier_id: str,
        actor: Actor,
        shipment_label: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Record a courier pick-up (the shipping-company completion event).

        Raises:
            NotFound: the courier id is not an active user.
            PreconditionNotMet: the user is not a courier.
        """
        order = self._load_for_update(order_id, expected_version)
        courier = find_actor(courier_id)
        if courier is None:
            raise NotFound(f"User {courier_id} not found.")
        if courier.role != Role.COURIER:
            raise PreconditionNotMet(f"User {courier_id} is not a courier.")
        if self._machine.assign_courier(order, courier.id, actor, shipment_label):
            return self._commit(order)
        return order

    @transaction.atomic
    def assign(
        self,
        order_id: str,
        assignee_id: str,
        actor: Actor,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Make *assignee_id* the single staff member responsible for the order.

        Raises:
            Unauthorized: the assigner is not a manager or admin.
            NotFound: the assignee is not an active user.
            PreconditionNotMet: the assignee is not staff or a courier.
        """
        order = self._load_for_update(order_id, expected_version)
        if not actor.is_supervisor:
            raise Unauthorized("Only managers can assign work.")
        assignee = find_actor(assignee_id)
        if assignee is None:
            raise NotFound(f"User {assignee_id} not found.")
        if assignee.role == Role.CLIENT:
            raise PreconditionNotMet(f"User {assignee_id} is a client, not staff.")

        if not self._assignments.assign(order, assignee.id, actor):
            return order
        order.add_domain_event(
            OrderAssigned(aggregate_id=order.id, assignee_id=assignee.id, actor_id=actor.id)
        )
        return self._commit(order)

    @transaction.atomic
    def record_attachment(
        self,
        order_id: str,
        stage_name: str,
        kind: str,
        reference: str,
        actor: Actor,
    ) -> Order:
        """Record "an attachment satisfying stage X exists".

        Takes no ``expected_version``: this is the first half of
        upload-then-transition and stands on its own, so a failed
        transition is retried without uploading again.
        """
        order = self._load_for_update(order_id, None)
        if self._machine.record_attachment(order, stage_name, kind, reference, actor):
            return self._commit(order)
        return order

    @transaction.atomic
    def add_comment(self, order_id: str, text: str, actor: Actor) -> Order:
        order = self._load_for_update(order_id, None)
        if not self._can_see(order, actor):
            raise OrderNotFound(f"Order {order_id} not found.")
        self._machine.add_comment(order, text, actor)
        return self._commit(order)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_for_update(self, order_id: str, expected_version: Optional[int]) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        check_expected_version(order, expected_version)
        return order

    def _commit(self, order: Order) -> Order:
        events = order.domain_events
        self._order_repo.save(order)
        self._publish_on_commit(events)
        return order

    @staticmethod
    def _publish_on_commit(events: List[DomainEvent]) -> None:
        def publish() -> None:
            for event in events:
                event_bus.publish(event)

        if events:
            transaction.on_commit(publish)

    @staticmethod
    def _can_see(order: Order, actor: Actor) -> bool:
        if actor.role == Role.CLIENT:
            return order.client.is_owned_by(actor.id)
        return True
