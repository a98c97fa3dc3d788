from django.apps import AppConfig


class CouponsConfig(AppConfig):
    name = "modules.coupons"
    label = "coupons"
