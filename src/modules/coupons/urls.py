from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.coupons.views import CouponViewSet, ValidateCouponView

router = DefaultRouter(trailing_slash=True)
router.register("coupons", CouponViewSet, basename="coupon")

# validate/ must precede the router's coupons/{pk}/ route
urlpatterns = [
    path("coupons/validate/", ValidateCouponView.as_view(), name="coupon_validate"),
    *router.urls,
]
