"""Catalog exceptions raised while resolving and pricing order lines."""

from __future__ import annotations


class ProductNotFound(Exception):
    """A product referenced by an order item does not exist."""

    def __init__(self, product_id) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class ProductInactive(Exception):
    """A product referenced by an order item has been deactivated."""

    def __init__(self, product_id, name: str = "") -> None:
        self.product_id = product_id
        self.name = name
        super().__init__(f'Product "{name or product_id}" is not available')


class InsufficientStock(Exception):
    """Fewer units are available than the order requests."""

    def __init__(
        self, product_id, requested: int, available: int, name: str = ""
    ) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.name = name
        super().__init__(
            f'Insufficient stock for "{name or product_id}". '
            f"Available: {available}, Requested: {requested}"
        )
