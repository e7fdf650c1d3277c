import json

from django.contrib import admin
from django.utils.safestring import mark_safe

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-only. Status changes must go through OrderLifecycleService so the
    customer is notified in the same transaction.
    """
    list_display = (
        "id",
        "group_id",
        "user",
        "seller",
        "category",
        "product_name",
        "status",
        "price",
        "quantity",
        "delivery_charge",
        "is_delivery_fee_paid",
        "created_at",
    )
    list_filter = ("status", "category", "is_delivery_fee_paid", "seller")
    search_fields = ("id", "group_id", "user__phone", "product_name", "mobile")

    readonly_fields = (
        "id",
        "group_id",
        "user",
        "seller",
        "category",
        "product",
        "product_name",
        "product_image",
        "quantity",
        "price",
        "delivery_charge",
        "is_delivery_fee_paid",
        "status",
        "return_type",
        "return_reason",
        "cancellation_reason",
        "rejection_reason",
        "formatted_shipping_address",
        "formatted_xerox_config",
        "formatted_tracking",
        "mobile",
        "alt_mobiles",
        "created_at",
        "updated_at",
    )
    exclude = ("shipping_address", "xerox_config", "tracking")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    # --- JSON fields ko readable dikhane ke liye ---

    def _pretty(self, value):
        if not value:
            return "-"
        return mark_safe(f"<pre>{json.dumps(value, indent=2)}</pre>")

    def formatted_shipping_address(self, obj):
        return self._pretty(obj.shipping_address)

    def formatted_xerox_config(self, obj):
        return self._pretty(obj.xerox_config)

    def formatted_tracking(self, obj):
        return self._pretty(obj.tracking)
