"""Coupon DTOs (Pydantic v2, immutable).

- ``CouponQuoteDTO``: what a code would give on an order amount.
- ``CreateCouponDTO`` / ``UpdateCouponDTO``: admin input.  Only fields
  that were actually sent are applied on update.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.coupons.constants import CouponType


class CouponQuoteDTO(BaseModel):
    """What a coupon would give on a given order amount."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    description: str
    discount_type: CouponType
    value: Decimal
    discount: Decimal
    free_shipping: bool
    minimum_order_amount: Decimal
    maximum_discount_amount: Optional[Decimal] = None


# ---------------------------------------------------------------------------
# Admin input
# ---------------------------------------------------------------------------


def _normalise_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError("Coupon code must not be empty.")
    return v.strip().upper()


def _non_negative(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v < 0:
        raise ValueError("Amount cannot be negative.")
    return v


def _at_least_one(v: Optional[int]) -> Optional[int]:
    if v is not None and v < 1:
        raise ValueError("Limit must be at least 1.")
    return v


class CreateCouponDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    description: str = ""
    discount_type: CouponType
    value: Decimal
    minimum_order_amount: Decimal = Decimal("0.00")
    maximum_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    user_usage_limit: int = 1
    start_date: Optional[datetime] = None
    end_date: datetime
    is_active: bool = True

    normalise_code = field_validator("code")(_normalise_code)
    amounts_not_negative = field_validator(
        "value", "minimum_order_amount", "maximum_discount_amount"
    )(_non_negative)
    limits_at_least_one = field_validator("usage_limit", "user_usage_limit")(
        _at_least_one
    )

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Coupon name must not be empty.")
        return v.strip()


class UpdateCouponDTO(BaseModel):
    """Partial update; fields left out of the request stay unset."""

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    discount_type: Optional[CouponType] = None
    value: Optional[Decimal] = None
    minimum_order_amount: Optional[Decimal] = None
    maximum_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    user_usage_limit: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    normalise_code = field_validator("code")(_normalise_code)
    amounts_not_negative = field_validator(
        "value", "minimum_order_amount", "maximum_discount_amount"
    )(_non_negative)
    limits_at_least_one = field_validator("usage_limit", "user_usage_limit")(
        _at_least_one
    )

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Coupon name must not be empty.")
        return v.strip() if v is not None else v
