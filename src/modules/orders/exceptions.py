"""Order domain exceptions.

Raised by the state machine and the Service Layer when business rules
are violated.  The API layer (Views) catches these and translates them
into appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist or has been soft-deleted."""


class InvalidTransition(DomainError):
    """The target status is unreachable from the order's current status."""


class PreconditionNotMet(DomainError):
    """The command is valid in principle but the order is not ready for it.

    ``reason`` is the human-readable explanation shown to the caller.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownSubProcess(PreconditionNotMet):
    """The stage or sub-process name is not part of the registry."""
