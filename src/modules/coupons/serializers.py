from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.coupons.models import Coupon


class ValidateCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    order_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        default=Decimal("0.00"),
    )


class CouponSerializer(serializers.ModelSerializer):
    """Read serializer for the admin coupon endpoints."""

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "name",
            "description",
            "discount_type",
            "value",
            "minimum_order_amount",
            "maximum_discount_amount",
            "usage_limit",
            "usage_count",
            "user_usage_limit",
            "start_date",
            "end_date",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
