# apps/notifications/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.utils.models import TimestampedModel


class Notification(TimestampedModel):
    """
    Single inbox row for a customer.

    Only written from inside an order transition (see
    OrderLifecycleService), so a notification never exists for an order
    update that did not commit.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="notifications",
        null=True,
        blank=True,
    )

    title = models.CharField(max_length=255)
    message = models.TextField()

    # Shop contact numbers at the time of the update
    seller_mobile_numbers = models.JSONField(default=list, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read", "created_at"], name="notif_user_read_created_idx"),
        ]

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at", "updated_at"])

    def __str__(self):
        return f"{self.user_id} {self.title}"
