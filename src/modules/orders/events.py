"""Domain events for the Orders bounded context.

Events are collected on the ``Order`` aggregate, written to the outbox by
the repository in the same transaction as the snapshot, and published on
the in-process bus once the transaction commits.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a client order is submitted."""

    client_id: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order moves to another status."""

    old_status: str = ""
    new_status: str = ""
    actor_id: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""

    actor_id: str = ""


@dataclass(frozen=True)
class SubProcessCompleted(DomainEvent):
    stage: str = ""
    sub_process: str = ""
    actor_id: str = ""


@dataclass(frozen=True)
class StageCompleted(DomainEvent):
    stage: str = ""
    actor_id: str = ""


@dataclass(frozen=True)
class DeliveryModeChosen(DomainEvent):
    mode: str = ""
    actor_id: str = ""


@dataclass(frozen=True)
class CourierAssigned(DomainEvent):
    courier_id: str = ""
    actor_id: str = ""


@dataclass(frozen=True)
class OrderAssigned(DomainEvent):
    assignee_id: str = ""
    actor_id: str = ""
