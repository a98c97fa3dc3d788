"""In-app notification records shown in the storefront and admin UI."""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.notifications.constants import NotificationEvent, RecipientType


class Notification(BaseModel):
    type = models.CharField(max_length=40, choices=NotificationEvent.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    recipient_type = models.CharField(max_length=20, choices=RecipientType.choices)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    action_url = models.CharField(max_length=255, blank=True, default="")
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient_type", "is_read"], name="notif_recipient_read_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type}: {self.title}"
