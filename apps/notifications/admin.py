# apps/notifications/admin.py
from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "title",
        "order",
        "is_read",
        "created_at",
    )
    list_filter = ("title", "is_read")
    search_fields = ("title", "message", "user__phone")
    readonly_fields = (
        "user",
        "order",
        "title",
        "message",
        "seller_mobile_numbers",
        "read_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False
