"""Static definition of the four production stages.

The pipeline is fixed, but what each stage tracks is data: adding a
prepress step means adding a name to ``PREPRESS_SUB_PROCESSES``, not a
new branch in the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from modules.core.actors import Role
from modules.orders.constants import OrderStatus, StageName
from modules.orders.exceptions import UnknownSubProcess

DESIGN_SUB_PROCESSES: Tuple[str, ...] = ("ripping",)

PREPRESS_SUB_PROCESSES: Tuple[str, ...] = (
    "positioning",
    "laserImaging",
    "exposure",
    "washout",
    "drying",
    "finishing",
)


@dataclass(frozen=True)
class StageDefinition:
    """One row of the stage registry.

    ``checklist_gates_completion``: the stage is Completed as soon as every
    sub-process is, and never before.  When ``False`` the checklist is
    tracked for display only and the stage completes when the order
    reaches ``completed_by``.
    """

    name: str
    label: str
    sub_processes: Tuple[str, ...] = ()
    checklist_gates_completion: bool = False
    operator_roles: frozenset = field(default_factory=frozenset)
    working_statuses: frozenset = field(default_factory=frozenset)
    started_by: Optional[str] = None
    completed_by: Optional[str] = None
    requires_attachment: bool = False

    def has_sub_process(self, name: str) -> bool:
        return name in self.sub_processes


class StageRegistry:
    """Lookup over the ordered stage definitions."""

    def __init__(self, definitions: Tuple[StageDefinition, ...]) -> None:
        self._definitions: Dict[str, StageDefinition] = {
            definition.name: definition for definition in definitions
        }

    def __iter__(self):
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._definitions)

    def get(self, stage_name: str) -> StageDefinition:
        """Raises ``UnknownSubProcess`` for a stage that does not exist."""
        try:
            return self._definitions[stage_name]
        except KeyError:
            raise UnknownSubProcess(
                f"Unknown stage '{stage_name}'. "
                f"Expected one of: {', '.join(self._definitions)}."
            ) from None

    def sub_process(self, stage_name: str, sub_process_name: str) -> StageDefinition:
        """Validate a (stage, sub-process) pair and return the stage."""
        definition = self.get(stage_name)
        if not definition.has_sub_process(sub_process_name):
            expected = ", ".join(definition.sub_processes) or "none"
            raise UnknownSubProcess(
                f"Stage '{stage_name}' has no sub-process '{sub_process_name}'. "
                f"Expected one of: {expected}."
            )
        return definition

    def started_by(self, status: str) -> Tuple[StageDefinition, ...]:
        """Stages that begin when an order enters *status*."""
        return tuple(d for d in self if d.started_by == status)

    def completed_by(self, status: str) -> Tuple[StageDefinition, ...]:
        """Stages that are finished when an order enters *status*."""
        return tuple(d for d in self if d.completed_by == status)


STAGES = StageRegistry(
    (
        StageDefinition(
            name=StageName.SUBMISSION,
            label="Submission",
        ),
        StageDefinition(
            name=StageName.DESIGN,
            label="Design",
            sub_processes=DESIGN_SUB_PROCESSES,
            checklist_gates_completion=False,
            operator_roles=frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
            working_statuses=frozenset(
                {OrderStatus.DESIGNING, OrderStatus.DESIGN_DONE}
            ),
            started_by=OrderStatus.DESIGNING,
            completed_by=OrderStatus.DESIGN_DONE,
            requires_attachment=True,
        ),
        StageDefinition(
            name=StageName.PREPRESS,
            label="Prepress",
            sub_processes=PREPRESS_SUB_PROCESSES,
            checklist_gates_completion=True,
            operator_roles=frozenset({Role.PREPRESS, Role.MANAGER, Role.ADMIN}),
            working_statuses=frozenset({OrderStatus.IN_PREPRESS}),
            started_by=OrderStatus.IN_PREPRESS,
        ),
        StageDefinition(
            name=StageName.DELIVERY,
            label="Delivery",
            started_by=OrderStatus.READY_FOR_DELIVERY,
            completed_by=OrderStatus.COMPLETED,
        ),
    )
)
