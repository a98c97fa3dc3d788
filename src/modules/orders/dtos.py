"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: checkout request (items, addresses, payment method,
  coupon, shipping method).
- ``OrderDraft``: priced, not yet persisted order produced by
  ``PricingCalculator``.
- ``OrderPlacementResult``: what checkout reports back to the caller.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.payments.dtos import PaymentMethod

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class VariantDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: Optional[str] = None
    metal: Optional[str] = None
    gemstone: Optional[str] = None
    color: Optional[str] = None


class CreateOrderItemDTO(BaseModel):
    """A single requested line; the price is resolved from the catalog."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    variant: VariantDTO = Field(default_factory=VariantDTO)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class AddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str
    address1: str
    address2: str = ""
    city: str
    state: str
    postal_code: str
    country: str
    phone: str = ""


class ShippingMethodDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    cost: Decimal = Field(ge=0)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``items`` must contain at least one item.
    - A blank coupon code counts as no coupon.
    """

    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]
    shipping_address: AddressDTO
    billing_address: Optional[AddressDTO] = None
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None
    shipping_method: Optional[ShippingMethodDTO] = None
    notes: str = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("coupon_code")
    @classmethod
    def blank_coupon_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


# ---------------------------------------------------------------------------
# Pricing output
# ---------------------------------------------------------------------------


class PricedLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    sku: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    track_quantity: bool = True
    variant: VariantDTO = Field(default_factory=VariantDTO)


class OrderDraft(BaseModel):
    """Fully priced order that has not been persisted yet.

    Every money field is already quantized to cents; ``total`` is the sum
    of the quantized components.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: int
    lines: List[PricedLine]
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    coupon_code: Optional[str] = None
    free_shipping: bool = False
    shipping_method: Optional[ShippingMethodDTO] = None


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderPlacementResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    order_number: str
    total: Decimal
    status: str
    payment_status: str
    success: bool
    error: Optional[str] = None
