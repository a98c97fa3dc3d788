"""Payment domain constants."""

from django.db import models


class PaymentMethodType(models.TextChoices):
    CARD = "card", "Card (Stripe)"
    PAYPAL = "paypal", "PayPal"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
