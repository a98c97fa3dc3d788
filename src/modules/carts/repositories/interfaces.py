"""Cart repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.carts.models import Cart


class ICartRepository(IRepository["Cart"]):
    @abstractmethod
    def deactivate_active(self, user_id) -> int:
        """Close the user's active cart; returns the number of carts closed."""
