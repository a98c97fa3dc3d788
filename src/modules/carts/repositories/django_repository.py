"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.carts.models import Cart
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    def get_by_id(self, id: str) -> Optional[Cart]:
        try:
            return Cart.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Cart) -> Cart:
        entity.save()
        return entity

    def deactivate_active(self, user_id) -> int:
        closed = Cart.objects.filter(user_id=user_id, is_active=True).update(
            is_active=False, updated_at=timezone.now()
        )
        logger.info("cart.deactivated", user_id=str(user_id), closed=closed)
        return closed
