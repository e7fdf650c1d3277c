# apps/notifications/serializers.py
from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    order_status = serializers.CharField(source="order.status", read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            "id",
            "order",
            "order_status",
            "title",
            "message",
            "seller_mobile_numbers",
            "is_read",
            "read_at",
            "created_at",
        ]
