"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order ledger needs:
persisting a priced draft with its items, locked look-ups, status
transitions with history, and reporting queries.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import OrderDraft
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create_pending(
        self,
        draft: OrderDraft,
        customer,
        shipping_address: Dict[str, Any],
        billing_address: Dict[str, Any],
        payment_method: Dict[str, Any],
        notes: str = "",
    ) -> Order:
        """Persist ``draft`` as a ``pending`` order with items and the
        creation history row."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock, ``None`` when absent."""

    @abstractmethod
    def transition(
        self,
        order: Order,
        new_status: str,
        user=None,
        history_notes: str = "",
        **fields: Any,
    ) -> Order:
        """Move ``order`` to ``new_status``, update ``fields`` and record
        the history row.  Validation is the caller's job."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        user=None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Orders with eager-loaded relations, optionally filtered."""

    @abstractmethod
    def statistics(self, since: datetime) -> Dict[str, Any]:
        """Aggregates over orders created at or after ``since``."""
