"""Generic repository interface.

``IRepository[T]`` is the base that every module's repository contract
extends.  Service-layer code depends on these abstractions, never on the
Django ORM directly, so services can be exercised with stubs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key, ``None`` when absent."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""
