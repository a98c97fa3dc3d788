"""Django ORM implementation of the Product repository.

Stock changes are expressed as ``UPDATE ... SET col = col +/- n`` with
``F()`` expressions.  The decrement carries its availability check in the
``WHERE`` clause, so two checkouts racing for the last unit cannot both
succeed: the database serialises the two UPDATEs and the loser matches
zero rows.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from modules.catalog.models import Product
from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Returns ``None`` for non-existent, soft-deleted or invalid IDs."""
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    def decrement_inventory(self, product_id, quantity: int) -> bool:
        updated = Product.objects.filter(
            id=product_id,
            inventory_quantity__gte=quantity,
        ).update(
            inventory_quantity=F("inventory_quantity") - quantity,
            updated_at=timezone.now(),
        )

        log = logger.bind(product_id=str(product_id), quantity=quantity)
        if not updated:
            log.warning("product.inventory_decrement_rejected")
            return False
        log.info("product.inventory_decremented")
        return True

    def restore_inventory(
        self, product_id, quantity: int, release_sale: bool, restock: bool = True
    ) -> None:
        if not (restock or release_sale):
            return
        changes = {"updated_at": timezone.now()}
        if restock:
            changes["inventory_quantity"] = F("inventory_quantity") + quantity
        if release_sale:
            changes["sold_count"] = Greatest(F("sold_count") - quantity, Value(0))
        Product.objects.filter(id=product_id).update(**changes)
        logger.info(
            "product.inventory_restored",
            product_id=str(product_id),
            quantity=quantity,
            release_sale=release_sale,
            restock=restock,
        )

    def commit_sale(self, product_id, quantity: int) -> None:
        Product.objects.filter(id=product_id).update(
            sold_count=F("sold_count") + quantity, updated_at=timezone.now()
        )
        logger.info(
            "product.sale_committed", product_id=str(product_id), quantity=quantity
        )

    def available_quantity(self, product_id) -> int:
        value = (
            Product.objects.filter(id=product_id)
            .values_list("inventory_quantity", flat=True)
            .first()
        )
        return value or 0
