# apps/catalog/models.py
from django.db import models

from apps.utils.models import TimestampedModel


class ProductCategory(models.TextChoices):
    STATIONARY = "stationary", "Stationary"
    BOOKS = "books", "Books"
    ELECTRONICS = "electronics", "Electronics"


class Product(TimestampedModel):
    """
    Sellable item. Checkout freezes `effective_price` onto the order line,
    so later edits here never change placed orders.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=ProductCategory.choices, db_index=True)

    price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    image_url = models.URLField(max_length=500, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category", "is_active"], name="product_category_active_idx"),
        ]

    def __str__(self):
        return self.name

    @property
    def effective_price(self):
        if self.discount_price is not None:
            return self.discount_price
        return self.price
