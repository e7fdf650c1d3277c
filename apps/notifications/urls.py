# apps/notifications/urls.py
from django.urls import path

from .views import (
    NotificationListView,
    NotificationMarkAllReadView,
    NotificationMarkReadView,
    PendingConfirmationListView,
)

urlpatterns = [
    path("", NotificationListView.as_view(), name="notification-list"),
    path("confirmations/", PendingConfirmationListView.as_view(), name="notification-confirmations"),
    path("read-all/", NotificationMarkAllReadView.as_view(), name="notification-mark-all-read"),
    path("<uuid:pk>/read/", NotificationMarkReadView.as_view(), name="notification-mark-read"),
]
