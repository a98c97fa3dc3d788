"""Payment DTOs (Pydantic v2, immutable).

``PaymentMethod`` is a tagged union on ``type``: a Stripe payment method
for cards, or an approved PayPal payment to execute.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CardPaymentMethod(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["card"] = "card"
    payment_method_id: str = Field(min_length=1, max_length=255)


class PayPalPaymentMethod(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["paypal"] = "paypal"
    payment_id: str = Field(min_length=1, max_length=255)
    payer_id: str = Field(min_length=1, max_length=255)


PaymentMethod = Annotated[
    Union[CardPaymentMethod, PayPalPaymentMethod],
    Field(discriminator="type"),
]


class ChargeRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: str
    method: PaymentMethod
    order_number: str
    customer_email: str = ""
    billing_address: Dict[str, Any] = Field(default_factory=dict)


class ChargeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class RefundResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    refund_id: Optional[str] = None
    error: Optional[str] = None
