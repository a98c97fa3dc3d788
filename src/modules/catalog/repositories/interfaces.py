"""Product repository interface.

Inventory is mutated only through ``decrement_inventory``,
``restore_inventory`` and ``commit_sale``; each is a single conditional
UPDATE at the storage layer, never a read-modify-write.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for catalog products."""

    @abstractmethod
    def decrement_inventory(self, product_id, quantity: int) -> bool:
        """Take ``quantity`` units if that many are available.

        Returns ``False`` (and changes nothing) when fewer units remain.
        """

    @abstractmethod
    def restore_inventory(
        self, product_id, quantity: int, release_sale: bool, restock: bool = True
    ) -> None:
        """Undo a reservation and/or a committed sale.

        ``restock`` puts ``quantity`` units back into inventory;
        ``release_sale`` lowers ``sold_count`` (never below zero).
        """

    @abstractmethod
    def commit_sale(self, product_id, quantity: int) -> None:
        """Increment ``sold_count`` for units that were paid for."""

    @abstractmethod
    def available_quantity(self, product_id) -> int:
        """Current inventory for error reporting."""
