"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: input for order submission.
- ``ChooseDeliveryDTO``: input for delivery-method selection.
- ``OrderChangesDTO``: output of the change-polling check.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.clients.dtos import AddressDTO
from modules.orders.constants import DeliveryMode, OrderPriority, OrderType


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order submission requests."""

    model_config = ConfigDict(frozen=True)

    client_id: UUID
    title: str
    description: str = ""
    order_type: OrderType = OrderType.NEW
    priority: OrderPriority = OrderPriority.NORMAL
    deadline: Optional[date] = None
    specifications: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Order title is required.")
        return v.strip()


class ChooseDeliveryDTO(BaseModel):
    """Immutable DTO for delivery-method selection.

    ``address`` may be a structured address or a single free-text line
    typed at the front desk.
    """

    model_config = ConfigDict(frozen=True)

    mode: DeliveryMode
    shipment_company: Optional[str] = None
    address: Optional[AddressDTO] = None

    @field_validator("address", mode="before")
    @classmethod
    def accept_free_text_address(
        cls, v: Union[str, Dict[str, Any], AddressDTO, None]
    ) -> Union[Dict[str, Any], AddressDTO, None]:
        if isinstance(v, str):
            return AddressDTO.from_free_text(v) if v.strip() else None
        return v

    @field_validator("address")
    @classmethod
    def drop_empty_address(cls, v: Optional[AddressDTO]) -> Optional[AddressDTO]:
        if v is not None and v.is_empty:
            return None
        return v


class OrderChangesDTO(BaseModel):
    """Answer to "has this order changed since version V"."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    changed: bool
    version: int
    poll_interval_seconds: int
