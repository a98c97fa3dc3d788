import django_filters
from django.db.models import Q
from django.utils import timezone

from modules.coupons.constants import CouponType
from modules.coupons.models import Coupon


class CouponFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(
        choices=[
            ("active", "Active"),
            ("expired", "Expired"),
            ("inactive", "Inactive"),
        ],
        method="filter_status",
    )
    discount_type = django_filters.ChoiceFilter(choices=CouponType.choices)

    class Meta:
        model = Coupon
        fields = ["status", "discount_type"]

    def filter_status(self, queryset, name, value):
        now = timezone.now()
        if value == "active":
            return queryset.filter(Q(is_active=True) & Q(end_date__gt=now))
        if value == "expired":
            return queryset.filter(end_date__lt=now)
        return queryset.filter(is_active=False)
