# apps/notifications/tests.py
import uuid
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.orders.models import Order, OrderCategory, OrderStatus
from apps.shops.models import Shop
from apps.utils.exceptions import NotFound
from .models import Notification
from .services import (
    ACTION_REQUIRED_TITLE,
    STATUS_UPDATE_TITLE,
    action_required_message,
    mark_read,
    notify_action_required,
    notify_status_change,
    pending_confirmations_for_user,
    purge_read,
    status_change_message,
)
from .tasks import purge_read_notifications

User = get_user_model()


def make_order(user, shop, status=OrderStatus.PENDING_CONFIRMATION, name="Classmate Notebook"):
    return Order.objects.create(
        group_id=uuid.uuid4(),
        user=user,
        seller=shop,
        category=OrderCategory.STATIONARY,
        product_name=name,
        quantity=1,
        price=Decimal("50.00"),
        mobile="+919876543210",
        status=status,
    )


class NotificationServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(phone="+919876543210", password="pass12345")
        self.shop = Shop.objects.create(
            name="Campus Store",
            mobile_numbers=["+919000000001"],
            services=["stationary"],
        )
        self.order = make_order(self.user, self.shop)

    def test_messages(self):
        self.assertEqual(
            status_change_message("Pen", "Packed"),
            'Your order for "Pen" is now Packed.',
        )
        self.assertEqual(
            status_change_message("Pen", "Rejected", "Out of stock"),
            'Your order for "Pen" is now Rejected. Reason: Out of stock',
        )
        self.assertIn("'Confirmations' tab", action_required_message("Pen"))

    def test_status_change_copies_shop_numbers(self):
        note = notify_status_change(self.order, OrderStatus.PACKED, None, self.shop.mobile_numbers)

        self.assertEqual(note.user, self.user)
        self.assertEqual(note.order, self.order)
        self.assertEqual(note.title, STATUS_UPDATE_TITLE)
        self.assertEqual(note.seller_mobile_numbers, ["+919000000001"])
        self.assertFalse(note.is_read)

    def test_action_required(self):
        note = notify_action_required(self.order, [])
        self.assertEqual(note.title, ACTION_REQUIRED_TITLE)
        self.assertEqual(note.seller_mobile_numbers, [])

    def test_mark_read_only_own_notifications(self):
        note = notify_action_required(self.order, [])
        other = User.objects.create_user(phone="+919876543211", password="pass12345")

        with self.assertRaises(NotFound):
            mark_read(other, note.id)

        mark_read(self.user, note.id)
        note.refresh_from_db()
        self.assertTrue(note.is_read)
        self.assertIsNotNone(note.read_at)

    def test_pending_confirmations(self):
        waiting = make_order(self.user, self.shop, status=OrderStatus.PENDING_DELIVERY_CONFIRMATION)
        make_order(self.user, self.shop, status=OrderStatus.DELIVERED)

        self.assertEqual(list(pending_confirmations_for_user(self.user)), [waiting])

    def test_purge_only_old_read_notifications(self):
        old_read = notify_action_required(self.order, [])
        Notification.objects.filter(pk=old_read.pk).update(
            is_read=True, read_at=timezone.now() - timedelta(days=120)
        )
        recent_read = notify_action_required(self.order, [])
        recent_read.mark_read()
        unread = notify_action_required(self.order, [])

        self.assertEqual(purge_read(90), 1)
        remaining = set(Notification.objects.values_list("id", flat=True))
        self.assertEqual(remaining, {recent_read.id, unread.id})

    def test_purge_task_uses_retention_setting(self):
        note = notify_action_required(self.order, [])
        Notification.objects.filter(pk=note.pk).update(
            is_read=True, read_at=timezone.now() - timedelta(days=365)
        )
        with self.settings(NOTIFICATION_RETENTION_DAYS=30):
            self.assertEqual(purge_read_notifications.apply().get(), 1)


class NotificationAPITests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(phone="+919876543210", password="pass12345")
        self.other = User.objects.create_user(phone="+919876543211", password="pass12345")
        self.shop = Shop.objects.create(name="Campus Store", services=["stationary"])
        self.order = make_order(self.user, self.shop, status=OrderStatus.PENDING_DELIVERY_CONFIRMATION)
        self.note = notify_action_required(self.order, [])
        notify_action_required(make_order(self.other, self.shop), [])
        self.client.force_authenticate(user=self.user)

    def test_list_shows_only_own_notifications(self):
        response = self.client.get(reverse("notification-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data["results"]
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]["title"], ACTION_REQUIRED_TITLE)
        self.assertEqual(results[0]["order_status"], OrderStatus.PENDING_DELIVERY_CONFIRMATION)

    def test_mark_read_and_read_all(self):
        response = self.client.post(reverse("notification-mark-read", args=[self.note.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(reverse("notification-mark-read", args=[uuid.uuid4()]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

        notify_status_change(self.order, OrderStatus.PACKED, None, [])
        response = self.client.post(reverse("notification-mark-all-read"))
        self.assertEqual(response.data["updated"], 1)
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())
        # other customer untouched
        self.assertTrue(Notification.objects.filter(user=self.other, is_read=False).exists())

    def test_confirmations_tab(self):
        response = self.client.get(reverse("notification-confirmations"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [str(self.order.id)])

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse("notification-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
