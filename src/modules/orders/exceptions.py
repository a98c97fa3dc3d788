"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist, is soft-deleted or belongs to
    another customer."""

    def __init__(self, order_id) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found.")


class InvalidStateTransition(Exception):
    """The order cannot move from its current status to the requested one."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition order from {current} to {requested}.")
