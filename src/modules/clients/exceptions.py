"""Client domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, NotFound


class ClientNotFound(NotFound):
    """The requested client does not exist or has been soft-deleted."""


class ClientAlreadyExists(DomainError):
    """A client with the same email or login is already registered."""


class InactiveClient(DomainError):
    """The client is inactive and cannot place orders."""
