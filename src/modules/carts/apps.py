from django.apps import AppConfig


class CartsConfig(AppConfig):
    name = "modules.carts"
    label = "carts"
