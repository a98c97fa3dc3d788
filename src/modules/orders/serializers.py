"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import EXPORT_FORMATS, STATISTICS_PERIODS, OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.payments.constants import PaymentMethodType

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class VariantSerializer(serializers.Serializer):
    size = serializers.CharField(required=False, max_length=50)
    metal = serializers.CharField(required=False, max_length=50)
    gemstone = serializers.CharField(required=False, max_length=50)
    color = serializers.CharField(required=False, max_length=50)


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, max_value=100)
    variant = VariantSerializer(required=False)


class AddressSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    address1 = serializers.CharField(max_length=255)
    address2 = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=2)
    phone = serializers.CharField(
        max_length=30, required=False, allow_blank=True, default=""
    )


class PaymentMethodSerializer(serializers.Serializer):
    """Tagged payment method: ``card`` needs a Stripe payment method id,
    ``paypal`` an approved payment id and payer id."""

    type = serializers.ChoiceField(choices=PaymentMethodType.choices)
    payment_method_id = serializers.CharField(required=False, max_length=255)
    payment_id = serializers.CharField(required=False, max_length=255)
    payer_id = serializers.CharField(required=False, max_length=255)

    REQUIRED = {
        PaymentMethodType.CARD: ("payment_method_id",),
        PaymentMethodType.PAYPAL: ("payment_id", "payer_id"),
    }

    def validate(self, attrs):
        required = self.REQUIRED[attrs["type"]]
        missing = {
            name: "This field is required."
            for name in required
            if not attrs.get(name)
        }
        if missing:
            raise serializers.ValidationError(missing)
        return {"type": attrs["type"], **{name: attrs[name] for name in required}}


class ShippingMethodSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.00")
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    shipping_address = AddressSerializer()
    billing_address = AddressSerializer(required=False)
    payment_method = PaymentMethodSerializer()
    coupon_code = serializers.CharField(
        required=False, allow_blank=True, max_length=50
    )
    shipping_method = ShippingMethodSerializer(required=False)
    notes = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=1000
    )


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=500
    )


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    tracking_number = serializers.CharField(
        required=False, allow_blank=True, max_length=100
    )
    notes = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=1000
    )


class StatisticsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(
        choices=list(STATISTICS_PERIODS), required=False, default="30d"
    )


class ExportQuerySerializer(serializers.Serializer):
    file_format = serializers.ChoiceField(
        choices=list(EXPORT_FORMATS), required=False, default="csv"
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the price snapshot."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "sku",
            "quantity",
            "unit_price",
            "line_total",
            "variant",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "user_id",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "status",
            "payment_status",
            "shipping_address",
            "billing_address",
            "subtotal",
            "discount",
            "shipping_cost",
            "tax",
            "total",
            "currency",
            "coupon_code",
            "shipping_method",
            "tracking_number",
            "notes",
            "cancellation_reason",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "status",
            "payment_status",
            "total",
            "item_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_item_count(self, obj: Order) -> int:
        return sum(item.quantity for item in obj.items.all())
