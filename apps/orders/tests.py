# apps/orders/tests.py
import uuid
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.notifications.models import Notification
from apps.notifications.services import ACTION_REQUIRED_TITLE, STATUS_UPDATE_TITLE
from apps.shops.models import Shop
from apps.utils.exceptions import InvalidTransition, NotFound, PreconditionFailed, ValidationFailed
from .models import Order, OrderCategory, OrderStatus, ReturnType, default_tracking
from .services import OrderLifecycleService
from .state_machine import (
    CANCELLED_CONFIRM_MESSAGE,
    CANNOT_CANCEL_MESSAGE,
    Actor,
    allowed_targets,
    apply_transition,
    check_transition,
    next_status,
)

User = get_user_model()
S = OrderStatus

AT = datetime(2024, 5, 10, 12, 0, tzinfo=dt_timezone.utc)
WINDOW = timedelta(days=3)


def memory_order(status, category=OrderCategory.STATIONARY, return_type=None, **tracking):
    """Unsaved order, enough for the pure state machine."""
    data = default_tracking()
    data.update(tracking)
    return Order(status=status, category=category, return_type=return_type, tracking=data)


def move(order, target, actor, at=AT, **kwargs):
    return apply_transition(order, target, actor, at=at, return_window=WINDOW, **kwargs)


class StateMachineTests(SimpleTestCase):
    def test_staff_options_from_pending(self):
        order = memory_order(S.PENDING_CONFIRMATION)
        self.assertEqual(allowed_targets(order, Actor.STAFF), [S.PROCESSING, S.REJECTED])
        self.assertEqual(allowed_targets(order, Actor.CUSTOMER), [S.CANCELLED])

    def test_accept_stamps_confirmed(self):
        order = memory_order(S.PENDING_CONFIRMATION)
        fields = move(order, S.PROCESSING, Actor.STAFF)

        self.assertEqual(order.status, S.PROCESSING)
        self.assertEqual(order.tracking["confirmed"], AT.isoformat())
        self.assertEqual(fields, ["status", "tracking"])

    def test_milestones_are_write_once(self):
        earlier = "2024-05-01T09:00:00+00:00"
        order = memory_order(S.REPLACEMENT_CONFIRMED, return_type=ReturnType.REPLACEMENT, confirmed=earlier)
        move(order, S.PROCESSING, Actor.STAFF)
        self.assertEqual(order.tracking["confirmed"], earlier)

    def test_unknown_or_skipped_transition(self):
        with self.assertRaisesMessage(InvalidTransition, "Cannot move this order from 'Processing' to 'Shipped'."):
            move(memory_order(S.PROCESSING), S.SHIPPED, Actor.STAFF)

    def test_wrong_actor(self):
        with self.assertRaises(InvalidTransition):
            move(memory_order(S.PENDING_DELIVERY_CONFIRMATION), S.DELIVERED, Actor.STAFF)
        with self.assertRaises(InvalidTransition):
            move(memory_order(S.PENDING_CONFIRMATION), S.PROCESSING, Actor.CUSTOMER)

    def test_delivery_confirmation_depends_on_replacement(self):
        plain = memory_order(S.OUT_FOR_DELIVERY)
        with self.assertRaises(InvalidTransition):
            move(plain, S.PENDING_REPLACEMENT_CONFIRMATION, Actor.STAFF)
        self.assertEqual(next_status(plain), S.PENDING_DELIVERY_CONFIRMATION)

        replacement = memory_order(S.OUT_FOR_DELIVERY, return_type=ReturnType.REPLACEMENT)
        with self.assertRaises(InvalidTransition):
            move(replacement, S.PENDING_DELIVERY_CONFIRMATION, Actor.STAFF)
        self.assertEqual(next_status(replacement), S.PENDING_REPLACEMENT_CONFIRMATION)

    def test_terminal_statuses_have_no_next_step(self):
        for status in (S.CANCELLED, S.REJECTED, S.RETURN_COMPLETED, S.REPLACEMENT_COMPLETED):
            order = memory_order(status)
            self.assertIsNone(next_status(order))
            self.assertEqual(allowed_targets(order, Actor.STAFF), [])

    def test_cancel_only_while_pending(self):
        order = memory_order(S.PROCESSING)
        with self.assertRaisesMessage(PreconditionFailed, CANNOT_CANCEL_MESSAGE):
            move(order, S.CANCELLED, Actor.CUSTOMER, reason="late")
        self.assertEqual(order.status, S.PROCESSING)

    def test_cancelling_finished_order_names_its_status(self):
        for status in (S.CANCELLED, S.REJECTED, S.RETURN_COMPLETED):
            order = memory_order(status)
            with self.assertRaisesMessage(
                PreconditionFailed, f"This order is already {status} and cannot be cancelled."
            ):
                move(order, S.CANCELLED, Actor.CUSTOMER, reason="changed mind")
            self.assertEqual(order.status, status)

    def test_confirming_cancelled_order(self):
        with self.assertRaisesMessage(PreconditionFailed, CANCELLED_CONFIRM_MESSAGE):
            move(memory_order(S.CANCELLED), S.PROCESSING, Actor.STAFF)

    def test_reason_required(self):
        for status, target, actor in (
            (S.PENDING_CONFIRMATION, S.REJECTED, Actor.STAFF),
            (S.PENDING_CONFIRMATION, S.CANCELLED, Actor.CUSTOMER),
            (S.RETURN_REQUESTED, S.RETURN_REJECTED, Actor.STAFF),
        ):
            order = memory_order(status)
            with self.assertRaises(ValidationFailed):
                move(order, target, actor, reason="   ")
            self.assertEqual(order.status, status)

    def test_return_window_is_inclusive(self):
        delivered = (AT - WINDOW).isoformat()
        order = memory_order(S.DELIVERED, delivered=delivered)
        move(order, S.RETURN_REQUESTED, Actor.CUSTOMER, reason="torn", return_type=ReturnType.REFUND)
        self.assertEqual(order.status, S.RETURN_REQUESTED)
        self.assertEqual(order.return_type, ReturnType.REFUND)
        self.assertEqual(order.return_reason, "torn")

        late = memory_order(S.DELIVERED, delivered=(AT - WINDOW - timedelta(seconds=1)).isoformat())
        with self.assertRaisesMessage(PreconditionFailed, "The return window of 3 days for this item has closed."):
            move(late, S.RETURN_REQUESTED, Actor.CUSTOMER, reason="torn", return_type=ReturnType.REFUND)

    def test_return_needs_delivery_timestamp(self):
        order = memory_order(S.DELIVERED)
        with self.assertRaises(PreconditionFailed):
            move(order, S.RETURN_REQUESTED, Actor.CUSTOMER, reason="torn", return_type=ReturnType.REFUND)

    def test_return_type_must_be_chosen(self):
        order = memory_order(S.DELIVERED, delivered=AT.isoformat())
        with self.assertRaisesMessage(ValidationFailed, "Please choose either a refund or a replacement."):
            move(order, S.RETURN_REQUESTED, Actor.CUSTOMER, reason="torn")

    def test_xerox_cannot_be_returned(self):
        order = memory_order(S.DELIVERED, category=OrderCategory.XEROX, delivered=AT.isoformat())
        with self.assertRaisesMessage(PreconditionFailed, "Xerox orders cannot be returned or replaced."):
            check_transition(
                order, S.RETURN_REQUESTED, Actor.CUSTOMER,
                reason="smudged", return_type=ReturnType.REFUND, at=AT, return_window=WINDOW,
            )

    def test_only_delivered_items_can_be_returned(self):
        with self.assertRaisesMessage(PreconditionFailed, "Only delivered items can be returned or replaced."):
            move(memory_order(S.SHIPPED), S.RETURN_REQUESTED, Actor.CUSTOMER, reason="x", return_type="refund")

    def test_replacement_resets_delivery_milestones(self):
        order = memory_order(
            S.RETURN_REQUESTED,
            return_type=ReturnType.REPLACEMENT,
            confirmed="2024-05-01T09:00:00+00:00",
            packed="2024-05-01T10:00:00+00:00",
            shipped="2024-05-02T10:00:00+00:00",
            outForDelivery="2024-05-03T10:00:00+00:00",
            delivered="2024-05-03T11:00:00+00:00",
            returnRequested="2024-05-04T11:00:00+00:00",
        )
        move(order, S.REPLACEMENT_CONFIRMED, Actor.STAFF)

        self.assertEqual(order.tracking["replacementConfirmed"], AT.isoformat())
        for name in ("packed", "shipped", "outForDelivery", "delivered", "replacementCompleted"):
            self.assertIsNone(order.tracking[name])
        self.assertEqual(order.tracking["confirmed"], "2024-05-01T09:00:00+00:00")
        self.assertEqual(order.tracking["returnRequested"], "2024-05-04T11:00:00+00:00")

    def test_refund_cannot_become_replacement(self):
        order = memory_order(S.RETURN_REQUESTED, return_type=ReturnType.REFUND)
        with self.assertRaises(InvalidTransition):
            move(order, S.REPLACEMENT_CONFIRMED, Actor.STAFF)


class LifecycleServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(phone="+919876543210", password="pass12345")
        self.shop = Shop.objects.create(
            name="Campus Store",
            mobile_numbers=["+919000000001", "+919000000002"],
            services=["stationary", "books", "xerox"],
        )

    def make_order(self, status=S.PENDING_CONFIRMATION, category=OrderCategory.STATIONARY, **tracking):
        data = default_tracking()
        data["ordered"] = timezone.now().isoformat()
        data.update(tracking)
        return Order.objects.create(
            group_id=uuid.uuid4(),
            user=self.user,
            seller=self.shop,
            category=category,
            product_name="Geometry Box",
            quantity=1,
            price=Decimal("135.00"),
            mobile="+919876543210",
            status=status,
            tracking=data,
        )

    def titles(self, order):
        return sorted(Notification.objects.filter(order=order).values_list("title", flat=True))

    def test_customer_cancels_then_seller_cannot_accept(self):
        order = self.make_order()
        OrderLifecycleService.cancel(order.id, "changed mind")

        order.refresh_from_db()
        self.assertEqual(order.status, S.CANCELLED)
        self.assertEqual(order.cancellation_reason, "changed mind")
        self.assertEqual(
            {k: v for k, v in order.tracking.items() if v and k != "ordered"}, {}
        )

        with self.assertRaisesMessage(PreconditionFailed, CANCELLED_CONFIRM_MESSAGE):
            OrderLifecycleService.accept(order.id)
        order.refresh_from_db()
        self.assertEqual(order.status, S.CANCELLED)
        self.assertEqual(self.titles(order), [])

    def test_delivery_flow_with_confirmation(self):
        order = self.make_order()
        OrderLifecycleService.accept(order.id)
        for _ in range(4):
            order = OrderLifecycleService.advance(order.id)
        self.assertEqual(order.status, S.PENDING_DELIVERY_CONFIRMATION)

        # Processing, Packed, Shipped notify; Out for Delivery does not
        self.assertEqual(
            self.titles(order),
            [ACTION_REQUIRED_TITLE] + [STATUS_UPDATE_TITLE] * 3,
        )
        action = Notification.objects.get(order=order, title=ACTION_REQUIRED_TITLE)
        self.assertEqual(action.seller_mobile_numbers, ["+919000000001", "+919000000002"])

        order = OrderLifecycleService.confirm_receipt(order.id)
        order.refresh_from_db()
        self.assertEqual(order.status, S.DELIVERED)
        self.assertIsNotNone(order.tracking["delivered"])
        for name in ("confirmed", "packed", "shipped", "outForDelivery"):
            self.assertIsNotNone(order.tracking[name])

    def test_confirm_without_pending_confirmation(self):
        order = self.make_order(status=S.SHIPPED)
        with self.assertRaises(InvalidTransition):
            OrderLifecycleService.confirm_receipt(order.id)

    def test_advance_without_next_step(self):
        order = self.make_order()
        with self.assertRaises(InvalidTransition):
            OrderLifecycleService.advance(order.id)

    def test_reject_needs_reason_and_notifies(self):
        order = self.make_order()
        with self.assertRaises(ValidationFailed):
            OrderLifecycleService.reject(order.id, "")

        OrderLifecycleService.reject(order.id, "Out of stock")
        order.refresh_from_db()
        self.assertEqual(order.status, S.REJECTED)
        self.assertEqual(order.rejection_reason, "Out of stock")
        note = Notification.objects.get(order=order)
        self.assertIn("Reason: Out of stock", note.message)

    def test_refund_flow(self):
        order = self.make_order(status=S.DELIVERED, delivered=(timezone.now() - timedelta(days=2)).isoformat())
        OrderLifecycleService.request_return(order.id, "Wrong colour", ReturnType.REFUND)
        order = OrderLifecycleService.approve_return(order.id)
        self.assertEqual(order.status, S.RETURN_APPROVED)

        for expected in (S.OUT_FOR_PICKUP, S.PICKED_UP, S.PENDING_RETURN_CONFIRMATION):
            order = OrderLifecycleService.advance(order.id)
            self.assertEqual(order.status, expected)

        order = OrderLifecycleService.confirm_receipt(order.id)
        self.assertEqual(order.status, S.RETURN_COMPLETED)
        self.assertIsNotNone(order.tracking["returnCompleted"])
        self.assertEqual(
            self.titles(order),
            [ACTION_REQUIRED_TITLE, STATUS_UPDATE_TITLE],
        )

    def test_replacement_flow(self):
        order = self.make_order(
            status=S.DELIVERED,
            confirmed="2024-05-01T09:00:00+00:00",
            packed="2024-05-01T10:00:00+00:00",
            delivered=timezone.now().isoformat(),
        )
        OrderLifecycleService.request_return(order.id, "Broken", ReturnType.REPLACEMENT)
        order = OrderLifecycleService.approve_return(order.id)
        self.assertEqual(order.status, S.REPLACEMENT_CONFIRMED)
        self.assertIsNone(order.tracking["packed"])
        self.assertIsNone(order.tracking["delivered"])

        for expected in (
            S.PROCESSING,
            S.PACKED,
            S.SHIPPED,
            S.OUT_FOR_DELIVERY,
            S.PENDING_REPLACEMENT_CONFIRMATION,
        ):
            order = OrderLifecycleService.advance(order.id)
            self.assertEqual(order.status, expected)
        self.assertEqual(order.tracking["confirmed"], "2024-05-01T09:00:00+00:00")

        order = OrderLifecycleService.confirm_receipt(order.id)
        self.assertEqual(order.status, S.REPLACEMENT_COMPLETED)
        self.assertIsNotNone(order.tracking["replacementCompleted"])

    def test_return_window_closed(self):
        order = self.make_order(status=S.DELIVERED, delivered=(timezone.now() - timedelta(days=4)).isoformat())
        with self.assertRaises(PreconditionFailed):
            OrderLifecycleService.request_return(order.id, "Late", ReturnType.REFUND)
        order.refresh_from_db()
        self.assertEqual(order.status, S.DELIVERED)

    def test_xerox_return_rejected(self):
        order = self.make_order(
            status=S.DELIVERED, category=OrderCategory.XEROX, delivered=timezone.now().isoformat()
        )
        with self.assertRaises(PreconditionFailed):
            OrderLifecycleService.request_return(order.id, "Smudged", ReturnType.REPLACEMENT)

    def test_return_rejected_by_shop(self):
        order = self.make_order(status=S.RETURN_REQUESTED)
        order = OrderLifecycleService.reject_return(order.id, "Item was used")
        self.assertEqual(order.status, S.RETURN_REJECTED)
        self.assertEqual(order.rejection_reason, "Item was used")

    def test_failed_notification_rolls_back_status(self):
        order = self.make_order()
        with patch("apps.orders.services.notify_status_change", side_effect=RuntimeError("inbox down")):
            with self.assertRaises(RuntimeError):
                OrderLifecycleService.accept(order.id)

        order.refresh_from_db()
        self.assertEqual(order.status, S.PENDING_CONFIRMATION)
        self.assertIsNone(order.tracking["confirmed"])

    def test_unknown_order(self):
        with self.assertRaisesMessage(NotFound, "Order not found."):
            OrderLifecycleService.accept(uuid.uuid4())
        with self.assertRaises(NotFound):
            OrderLifecycleService.cancel("not-a-uuid", "x")

    def test_expected_delivery(self):
        order = self.make_order(status=S.PACKED)
        when = timezone.now() + timedelta(days=2)
        order = OrderLifecycleService.set_expected_delivery(order.id, when)
        self.assertEqual(order.tracking["expectedDelivery"], when.isoformat())

        # can be revised before delivery
        later = when + timedelta(days=1)
        order = OrderLifecycleService.set_expected_delivery(order.id, later)
        self.assertEqual(order.tracking["expectedDelivery"], later.isoformat())

        delivered = self.make_order(status=S.DELIVERED)
        with self.assertRaises(PreconditionFailed):
            OrderLifecycleService.set_expected_delivery(delivered.id, when)
