# apps/notifications/views.py
from rest_framework import generics, permissions, views
from rest_framework.response import Response

from apps.orders.serializers import OrderSerializer
from .serializers import NotificationSerializer
from .services import (
    mark_all_read,
    mark_read,
    notifications_for_user,
    pending_confirmations_for_user,
)


class NotificationListView(generics.ListAPIView):
    """
    GET /api/v1/notifications/
    """
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return notifications_for_user(self.request.user)


class NotificationMarkReadView(views.APIView):
    """
    POST /api/v1/notifications/<id>/read/
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        mark_read(request.user, pk)
        return Response({"status": "read"})


class NotificationMarkAllReadView(views.APIView):
    """
    POST /api/v1/notifications/read-all/
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        updated = mark_all_read(request.user)
        return Response({"status": "all_read", "updated": updated})


class PendingConfirmationListView(generics.ListAPIView):
    """
    GET /api/v1/notifications/confirmations/
    Orders the customer still has to confirm.
    """
    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return pending_confirmations_for_user(self.request.user)
