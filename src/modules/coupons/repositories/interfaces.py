"""Coupon repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.coupons.models import Coupon, CouponUsage


class ICouponRepository(IRepository["Coupon"]):
    """Repository contract for coupons and their usage history."""

    @abstractmethod
    def find_by_code(self, code: str) -> Optional[Coupon]:
        """Active coupon matching ``code`` case-insensitively."""

    @abstractmethod
    def count_user_usages(self, coupon: Coupon, user_id) -> int:
        """How many times ``user_id`` has redeemed ``coupon``."""

    @abstractmethod
    def record_usage(self, code: str, user_id, order_id) -> CouponUsage:
        """Append a usage record and bump ``usage_count``.

        Re-checks the global and per-user limits under a row lock and
        raises ``CouponUsageExceeded`` instead of over-redeeming.
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """All coupons, newest first, optionally narrowed by ORM look-ups."""

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Coupon]:
        """Coupon with ``code`` whether or not it is active."""

    @abstractmethod
    def has_usages(self, coupon: Coupon) -> bool:
        """Whether any order has redeemed ``coupon``."""

    @abstractmethod
    def delete(self, coupon: Coupon) -> None:
        """Remove a coupon that has never been redeemed."""

    @abstractmethod
    def usage_summary(self, coupon: Coupon) -> Dict[str, Any]:
        """Redemptions, distinct users and the discount/revenue of their orders."""
