"""Task and claim domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class TaskNotFound(NotFound):
    """The requested task does not exist or has been soft-deleted."""


class ClaimNotFound(NotFound):
    """The requested claim does not exist or has been soft-deleted."""
