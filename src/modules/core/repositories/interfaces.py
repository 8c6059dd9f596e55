"""Generic repository interfaces (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that all
domain-specific repository interfaces extend, and
``IVersionedRepository[T]`` for aggregates written with compare-and-set.
Service-layer code depends on these abstractions, never on Django ORM
directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` represents the domain entity managed by the
    repository (e.g. ``Order``, ``Task``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Iterable[T]:
        """List entities with optional filters."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist an existing entity."""


class IVersionedRepository(IRepository[T]):
    """Repository for aggregates serialized per record by a version counter."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Retrieve an entity with a row-level lock for the current transaction."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist *entity* if its version is unchanged since it was loaded.

        Raises:
            ConcurrentModification: another writer got there first.
        """

    @abstractmethod
    def get_version(self, id: str) -> Optional[int]:
        """Current version of the record, or ``None`` if it does not exist."""
