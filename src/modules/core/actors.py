"""Acting identity passed from the API layer into the domain.

Authentication is an external concern; the domain only needs *who* is acting
and in which *role*.  Roles are Django auth groups named after ``Role``
values; superusers always act as ``admin``.
"""

from __future__ import annotations

from dataclasses import dataclass

from django.db import models


class Role(models.TextChoices):
    CLIENT = "client", "Client"
    EMPLOYEE = "employee", "Designer"
    PREPRESS = "prepress", "Prepress technician"
    MANAGER = "manager", "Manager"
    ADMIN = "admin", "Administrator"
    COURIER = "courier", "Courier"


SUPERVISOR_ROLES: frozenset[str] = frozenset({Role.MANAGER, Role.ADMIN})
STAFF_ROLES: frozenset[str] = frozenset(
    {Role.EMPLOYEE, Role.PREPRESS, Role.MANAGER, Role.ADMIN}
)

# Most privileged first: a user in several groups acts with the strongest one.
_ROLE_PRECEDENCE = (
    Role.ADMIN,
    Role.MANAGER,
    Role.PREPRESS,
    Role.EMPLOYEE,
    Role.COURIER,
    Role.CLIENT,
)


@dataclass(frozen=True)
class Actor:
    """Immutable (id, role) pair identifying who issued a command."""

    id: str
    role: str

    @property
    def is_supervisor(self) -> bool:
        return self.role in SUPERVISOR_ROLES

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @classmethod
    def from_user(cls, user) -> Actor:
        """Build an ``Actor`` from an authenticated Django user."""
        if getattr(user, "is_superuser", False):
            return cls(id=str(user.pk), role=Role.ADMIN)
        groups = set(user.groups.values_list("name", flat=True))
        for role in _ROLE_PRECEDENCE:
            if role.value in groups:
                return cls(id=str(user.pk), role=role)
        return cls(id=str(user.pk), role=Role.CLIENT)

    def __str__(self) -> str:
        return f"{self.role}:{self.id}"


def find_actor(user_id: str) -> Actor | None:
    """Resolve an active user id to an ``Actor``, or ``None`` if unknown."""
    from django.contrib.auth import get_user_model

    try:
        user = get_user_model().objects.filter(pk=user_id, is_active=True).first()
    except (ValueError, TypeError):
        return None
    return Actor.from_user(user) if user else None
