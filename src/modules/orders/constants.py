"""Order domain constants.

Status, stage, sub-process and delivery-mode vocabularies, plus the one
canonical transition table every caller consults.  The string values are
part of the public API and must not change.
"""

from django.db import models

from modules.core.actors import Role


class OrderStatus(models.TextChoices):
    SUBMITTED = "Submitted", "Submitted"
    DESIGNING = "Designing", "Designing"
    DESIGN_DONE = "Design Done", "Design Done"
    IN_PREPRESS = "In Prepress", "In Prepress"
    READY_FOR_DELIVERY = "Ready for Delivery", "Ready for Delivery"
    COMPLETED = "Completed", "Completed"
    CANCELLED = "Cancelled", "Cancelled"
    ON_HOLD = "On Hold", "On Hold"


class StageName(models.TextChoices):
    SUBMISSION = "submission", "Submission"
    DESIGN = "design", "Design"
    PREPRESS = "prepress", "Prepress"
    DELIVERY = "delivery", "Delivery"


class StageStatus(models.TextChoices):
    NOT_STARTED = "Not Started", "Not Started"
    IN_PROGRESS = "In Progress", "In Progress"
    COMPLETED = "Completed", "Completed"


class SubProcessStatus(models.TextChoices):
    NOT_STARTED = "Not Started", "Not Started"
    COMPLETED = "Completed", "Completed"


class DeliveryMode(models.TextChoices):
    DIRECT = "direct", "Direct handover"
    CLIENT_COLLECTION = "client-collection", "Client self-collection"
    SHIPPING_COMPANY = "shipping-company", "Shipping company"


class AttachmentKind(models.TextChoices):
    FILE = "file", "File"
    LINK = "link", "Link"


class OrderPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


# On Hold is resolved against ``Order.status_before_hold``: only the status
# the order was held from (or Cancelled) is reachable from it.
# In Prepress may be re-entered; a repeat leaves the stages as they are.
VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.SUBMITTED: {
        OrderStatus.DESIGNING,
        OrderStatus.CANCELLED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.DESIGNING: {
        OrderStatus.DESIGN_DONE,
        OrderStatus.CANCELLED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.DESIGN_DONE: {
        OrderStatus.IN_PREPRESS,
        OrderStatus.CANCELLED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.IN_PREPRESS: {
        OrderStatus.IN_PREPRESS,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.CANCELLED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.READY_FOR_DELIVERY: {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.ON_HOLD,
    },
    OrderStatus.ON_HOLD: {
        OrderStatus.SUBMITTED,
        OrderStatus.DESIGNING,
        OrderStatus.DESIGN_DONE,
        OrderStatus.IN_PREPRESS,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Roles allowed to move an order *into* a status.  Completed is resolved
# per delivery mode (``modules.orders.delivery.MODE_POLICIES``) and
# Cancelled is additionally open to the owning client while Submitted.
TRANSITION_ROLES: dict[str, frozenset[str]] = {
    OrderStatus.DESIGNING: frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    OrderStatus.DESIGN_DONE: frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    OrderStatus.IN_PREPRESS: frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    OrderStatus.READY_FOR_DELIVERY: frozenset(
        {Role.EMPLOYEE, Role.PREPRESS, Role.MANAGER, Role.ADMIN}
    ),
    OrderStatus.ON_HOLD: frozenset({Role.MANAGER, Role.ADMIN}),
    OrderStatus.CANCELLED: frozenset({Role.MANAGER, Role.ADMIN}),
}

# Leaving On Hold is a supervisor decision whatever the target.
RESUME_ROLES: frozenset[str] = frozenset({Role.MANAGER, Role.ADMIN})

ORDER_NUMBER_MAX_RETRIES = 5


class OrderType(models.TextChoices):
    NEW = "New Order", "New Order"
    EXISTING = "Existing", "Existing"
    EXISTING_WITH_CHANGES = "Existing With Changes", "Existing With Changes"
