"""Value types stored in ``Order.stages``.

``Order.stages`` is persisted as JSON; these pydantic models give it an
explicit shape.  Every read goes through safe lookups with defaults, so a
stage or sub-process missing from an older snapshot reads as
"Not Started" instead of raising.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from modules.orders.constants import DeliveryMode, StageStatus, SubProcessStatus


class SubProcessState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SubProcessStatus = SubProcessStatus.NOT_STARTED
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == SubProcessStatus.COMPLETED


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def one_line(self) -> str:
        parts = (self.street, self.city, self.state, self.postal_code, self.country)
        return ", ".join(part for part in parts if part)


class DeliveryInfo(BaseModel):
    """Chosen hand-off method for a finished order.

    ``destination`` is display data for the courier or front desk; it is
    not authoritative and never written to the audit log.
    """

    model_config = ConfigDict(frozen=True)

    mode: DeliveryMode
    destination: Optional[Address] = None
    shipment_company: Optional[str] = None
    assigned_courier: Optional[str] = None
    shipment_label: Optional[str] = None
    created_at: datetime


class StageState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: StageStatus = StageStatus.NOT_STARTED
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    completed_by: Optional[str] = None
    sub_processes: Dict[str, SubProcessState] = Field(default_factory=dict)
    courier_info: Optional[DeliveryInfo] = None

    @property
    def is_completed(self) -> bool:
        return self.status == StageStatus.COMPLETED

    def sub_process(self, name: str) -> SubProcessState:
        """State of sub-process *name*, "Not Started" when never touched."""
        return self.sub_processes.get(name, SubProcessState())


StageMap = Dict[str, StageState]

stage_map_adapter: TypeAdapter[StageMap] = TypeAdapter(StageMap)


def load_stages(raw: Optional[dict]) -> StageMap:
    return stage_map_adapter.validate_python(raw or {})


def dump_stages(stages: StageMap) -> dict:
    return stage_map_adapter.dump_python(stages, mode="json")
