from django.db import models


class NotificationEvent(models.TextChoices):
    ORDER_CONFIRMATION = "order_confirmation", "Order confirmation"
    NEW_ORDER = "new_order", "New order"
    ORDER_CANCELLED = "order_cancelled", "Order cancelled"
    ORDER_STATUS_UPDATED = "order_status_updated", "Order status updated"


class RecipientType(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    ALL_ADMINS = "all_admins", "All admins"
