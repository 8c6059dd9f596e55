"""Domain exceptions shared by every module.

Raised by the Service Layer and the domain components it drives.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.  None of them is fatal to the process and
the core never retries on the caller's behalf.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for recoverable, caller-facing business failures."""


class NotFound(DomainError):
    """The requested record does not exist or has been soft-deleted."""


class Unauthorized(DomainError):
    """The acting role may not perform this operation."""


class ConcurrentModification(DomainError):
    """The record changed since the caller loaded it.

    Raised instead of silently overwriting a concurrent write.  The caller
    is expected to reload and retry.
    """

    def __init__(self, message: str, current_version: int | None = None) -> None:
        super().__init__(message)
        self.current_version = current_version


class ImmutableRecord(Exception):
    """An append-only record was asked to change or disappear."""
