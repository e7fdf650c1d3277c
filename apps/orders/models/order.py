from django.conf import settings
from django.db import models

from apps.utils.models import TimestampedModel

# Milestones in the order they normally happen
TRACKING_FIELDS = (
    "ordered",
    "confirmed",
    "packed",
    "shipped",
    "outForDelivery",
    "delivered",
    "returnRequested",
    "returnApproved",
    "outForPickup",
    "pickedUp",
    "returnCompleted",
    "replacementConfirmed",
    "replacementCompleted",
    "expectedDelivery",
)


def default_tracking():
    return {field: None for field in TRACKING_FIELDS}


class OrderStatus(models.TextChoices):
    PENDING_CONFIRMATION = "Pending Confirmation", "Pending Confirmation"
    PROCESSING = "Processing", "Processing"
    PACKED = "Packed", "Packed"
    SHIPPED = "Shipped", "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery", "Out for Delivery"
    PENDING_DELIVERY_CONFIRMATION = "Pending Delivery Confirmation", "Pending Delivery Confirmation"
    DELIVERED = "Delivered", "Delivered"
    CANCELLED = "Cancelled", "Cancelled"
    REJECTED = "Rejected", "Rejected"
    RETURN_REQUESTED = "Return Requested", "Return Requested"
    RETURN_APPROVED = "Return Approved", "Return Approved"
    OUT_FOR_PICKUP = "Out for Pickup", "Out for Pickup"
    PICKED_UP = "Picked Up", "Picked Up"
    PENDING_RETURN_CONFIRMATION = "Pending Return Confirmation", "Pending Return Confirmation"
    RETURN_REJECTED = "Return Rejected", "Return Rejected"
    RETURN_COMPLETED = "Return Completed", "Return Completed"
    REPLACEMENT_CONFIRMED = "Replacement Confirmed", "Replacement Confirmed"
    PENDING_REPLACEMENT_CONFIRMATION = "Pending Replacement Confirmation", "Pending Replacement Confirmation"
    REPLACEMENT_COMPLETED = "Replacement Completed", "Replacement Completed"


class OrderCategory(models.TextChoices):
    STATIONARY = "stationary", "Stationary"
    BOOKS = "books", "Books"
    ELECTRONICS = "electronics", "Electronics"
    XEROX = "xerox", "Xerox"


class ReturnType(models.TextChoices):
    REFUND = "refund", "Refund"
    REPLACEMENT = "replacement", "Replacement"


class Order(TimestampedModel):
    """
    One line of a checkout. Lines from the same checkout share `group_id`.

    Price, delivery charge, address and xerox options are snapshots taken
    at checkout; nothing here is recomputed from live pricing.
    Status changes go through OrderLifecycleService only.
    """
    group_id = models.UUIDField(db_index=True, editable=False)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")
    seller = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="orders")
    category = models.CharField(max_length=20, choices=OrderCategory.choices)

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_lines",
    )
    product_name = models.CharField(max_length=255)
    # xerox: uploaded document URL, may arrive after checkout
    product_image = models.URLField(max_length=1000, null=True, blank=True)

    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=10, decimal_places=2, help_text="Per unit, frozen at checkout")
    delivery_charge = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_delivery_fee_paid = models.BooleanField(default=False)

    shipping_address = models.JSONField(default=dict)
    mobile = models.CharField(max_length=15)
    alt_mobiles = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=40,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_CONFIRMATION,
        db_index=True,
    )
    xerox_config = models.JSONField(null=True, blank=True)
    tracking = models.JSONField(default=default_tracking)

    return_reason = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)
    return_type = models.CharField(max_length=20, choices=ReturnType.choices, null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
            models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
        ]

    def __str__(self):
        return f"{self.id} [{self.status}]"

    @property
    def line_total(self):
        return self.price * self.quantity

    @property
    def is_xerox(self) -> bool:
        return self.category == OrderCategory.XEROX


__all__ = [
    "TRACKING_FIELDS",
    "default_tracking",
    "OrderStatus",
    "OrderCategory",
    "ReturnType",
    "Order",
]
