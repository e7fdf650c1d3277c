from django.conf import settings
from django.db import models

from apps.utils.models import TimestampedModel


class ShopService(models.TextChoices):
    STATIONARY = "stationary", "Stationary"
    BOOKS = "books", "Books"
    ELECTRONICS = "electronics", "Electronics"
    XEROX = "xerox", "Xerox"


class Shop(TimestampedModel):
    """
    Fulfilling seller. Every order line belongs to exactly one shop.
    """
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True)

    # Copied onto customer notifications so they can call the shop
    mobile_numbers = models.JSONField(default=list, blank=True)

    owners = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name="owned_shops", blank=True)
    employees = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name="employed_at_shops", blank=True)

    services = models.JSONField(default=list, blank=True, help_text="Subset of ShopService values")
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def offers(self, category: str) -> bool:
        return category in (self.services or [])

    def is_staff_member(self, user) -> bool:
        if not user or not user.is_authenticated:
            return False
        return (
            self.owners.filter(pk=user.pk).exists()
            or self.employees.filter(pk=user.pk).exists()
        )
