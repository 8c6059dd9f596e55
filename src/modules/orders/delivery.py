"""Delivery mode routing.

The three hand-off paths differ only in data: which fields they need,
whether a courier must pick the parcel up first, and who may confirm the
hand-off.  Each mode is a row of ``MODE_POLICIES``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

import structlog
from django.utils import timezone

from modules.core.actors import Role
from modules.core.audit import AuditLog, audit_log
from modules.core.exceptions import Unauthorized
from modules.orders.constants import DeliveryMode, OrderStatus, StageName
from modules.orders.events import CourierAssigned, DeliveryModeChosen
from modules.orders.exceptions import PreconditionNotMet
from modules.orders.stage_state import Address, DeliveryInfo

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ModePolicy:
    mode: str
    label: str
    requires_shipment_company: bool
    requires_courier: bool
    accepts_address_override: bool
    completing_roles: frozenset
    client_may_complete: bool


MODE_POLICIES: Dict[str, ModePolicy] = {
    DeliveryMode.DIRECT: ModePolicy(
        mode=DeliveryMode.DIRECT,
        label="Direct handover",
        requires_shipment_company=False,
        requires_courier=False,
        accepts_address_override=True,
        completing_roles=frozenset(
            {Role.COURIER, Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}
        ),
        client_may_complete=True,
    ),
    DeliveryMode.CLIENT_COLLECTION: ModePolicy(
        mode=DeliveryMode.CLIENT_COLLECTION,
        label="Client self-collection",
        requires_shipment_company=False,
        requires_courier=False,
        accepts_address_override=True,
        completing_roles=frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
        client_may_complete=True,
    ),
    DeliveryMode.SHIPPING_COMPANY: ModePolicy(
        mode=DeliveryMode.SHIPPING_COMPANY,
        label="Shipping company",
        requires_shipment_company=True,
        requires_courier=True,
        accepts_address_override=False,
        completing_roles=frozenset({Role.COURIER, Role.MANAGER, Role.ADMIN}),
        client_may_complete=False,
    ),
}

# Once an order is waiting for hand-off (or past it) the mode is fixed.
_MODE_LOCKED_STATUSES = frozenset(
    {OrderStatus.READY_FOR_DELIVERY, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)


def policy_for(mode: str) -> ModePolicy:
    try:
        return MODE_POLICIES[mode]
    except KeyError:
        raise PreconditionNotMet(
            f"Unknown delivery mode '{mode}'. "
            f"Expected one of: {', '.join(MODE_POLICIES)}."
        ) from None


class DeliveryRouter:
    def __init__(self, audit: Optional[AuditLog] = None) -> None:
        self._audit = audit or audit_log

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def delivery_info(self, order: Order) -> Optional[DeliveryInfo]:
        return order.get_stage(StageName.DELIVERY).courier_info

    def active_policy(self, order: Order) -> Optional[ModePolicy]:
        info = self.delivery_info(order)
        return MODE_POLICIES.get(info.mode) if info else None

    def completion_blocker(self, order: Order) -> Optional[str]:
        """Why the order cannot be handed off yet, or ``None`` if it can."""
        info = self.delivery_info(order)
        if info is None:
            return "no delivery mode has been chosen"
        policy = MODE_POLICIES[info.mode]
        if policy.requires_courier and not info.assigned_courier:
            return "no courier has picked up the shipment yet"
        return None

    def can_complete(self, order: Order) -> bool:
        return self.completion_blocker(order) is None

    def may_complete(self, order: Order, actor: Actor) -> bool:
        """Whether *actor* may confirm the hand-off for the active mode."""
        policy = self.active_policy(order)
        if policy is None:
            return actor.role in {Role.MANAGER, Role.ADMIN}
        if actor.role in policy.completing_roles:
            return True
        return (
            policy.client_may_complete
            and actor.role == Role.CLIENT
            and order.client.is_owned_by(actor.id)
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def choose_mode(
        self,
        order: Order,
        mode: str,
        actor: Actor,
        shipment_company: Optional[str] = None,
        address: Optional[Address] = None,
    ) -> DeliveryInfo:
        """Record how the finished order will leave the shop.

        Raises:
            Unauthorized: only staff choose the delivery mode.
            PreconditionNotMet: prepress unfinished, order already waiting
                for hand-off, or a mode-specific field is missing.
        """
        log = logger.bind(order_id=str(order.pk), mode=mode, actor_id=actor.id)
        if not actor.is_staff:
            log.warning("order.delivery_unauthorized", role=str(actor.role))
            raise Unauthorized("Only staff can choose the delivery method.")

        policy = policy_for(mode)

        if not order.get_stage(StageName.PREPRESS).is_completed:
            raise PreconditionNotMet(
                "Cannot choose a delivery method: the prepress stage is not completed."
            )
        if order.status in _MODE_LOCKED_STATUSES:
            raise PreconditionNotMet(
                f"Cannot choose a delivery method: order is already {order.status}."
            )

        company = (shipment_company or "").strip()
        if policy.requires_shipment_company and not company:
            raise PreconditionNotMet(
                f"{policy.label} delivery requires a shipment company name."
            )
        if address is not None and not policy.accepts_address_override:
            raise PreconditionNotMet(
                f"{policy.label} delivery ships to the client's registered address."
            )

        destination = address
        if destination is None and order.client.has_address:
            destination = Address(**order.client.address)

        info = DeliveryInfo(
            mode=policy.mode,
            destination=destination,
            shipment_company=company if policy.requires_shipment_company else None,
            created_at=timezone.now(),
        )
        state = order.get_stage(StageName.DELIVERY)
        order.put_stage(StageName.DELIVERY, state.model_copy(update={"courier_info": info}))

        details = policy.label
        if info.shipment_company:
            details += f" via {info.shipment_company}"
        self._audit.record(order, "Delivery Method Chosen", actor, details)
        order.add_domain_event(
            DeliveryModeChosen(aggregate_id=order.pk, mode=policy.mode, actor_id=actor.id)
        )
        log.info("order.delivery_mode_chosen")
        return info

    def assign_courier(
        self,
        order: Order,
        courier_id: str,
        actor: Actor,
        shipment_label: Optional[str] = None,
    ) -> bool:
        """Record that a courier has picked up the order.

        Couriers claim orders for themselves; managers and admins may put
        any courier on it.  Returns ``False`` when nothing changes.

        Raises:
            Unauthorized: any other role, or a courier claiming for someone else.
            PreconditionNotMet: order not Ready for Delivery or no mode chosen.
        """
        log = logger.bind(order_id=str(order.pk), courier_id=courier_id, actor_id=actor.id)
        if actor.role == Role.COURIER:
            if courier_id != actor.id:
                raise Unauthorized("Couriers can only claim orders for themselves.")
        elif not actor.is_supervisor:
            log.warning("order.courier_unauthorized", role=str(actor.role))
            raise Unauthorized("Only couriers or managers can assign a courier.")

        if order.status != OrderStatus.READY_FOR_DELIVERY:
            raise PreconditionNotMet(
                f"Cannot assign a courier: order is {order.status}, "
                f"it must be {OrderStatus.READY_FOR_DELIVERY}."
            )
        info = self.delivery_info(order)
        if info is None:
            raise PreconditionNotMet(
                "Cannot assign a courier: no delivery method has been chosen."
            )

        label = shipment_label or info.shipment_label
        if info.assigned_courier == courier_id and label == info.shipment_label:
            log.info("order.courier_unchanged")
            return False

        previous = info.assigned_courier
        info = info.model_copy(
            update={"assigned_courier": courier_id, "shipment_label": label}
        )
        state = order.get_stage(StageName.DELIVERY)
        order.put_stage(StageName.DELIVERY, state.model_copy(update={"courier_info": info}))

        details = f"Courier {courier_id}"
        if previous and previous != courier_id:
            details += f" (previously {previous})"
        if shipment_label:
            details += f", shipment label {shipment_label}"
        self._audit.record(order, "Courier Assigned", actor, details)
        order.add_domain_event(
            CourierAssigned(aggregate_id=order.pk, courier_id=courier_id, actor_id=actor.id)
        )
        log.info("order.courier_assigned", previous=previous)
        return True


delivery_router = DeliveryRouter()
