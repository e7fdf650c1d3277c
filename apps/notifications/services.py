# apps/notifications/services.py
import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .models import Notification

logger = logging.getLogger(__name__)

STATUS_UPDATE_TITLE = "Order Status Updated"
ACTION_REQUIRED_TITLE = "Action Required"


def status_change_message(product_name: str, status: str, reason: str | None = None) -> str:
    message = f'Your order for "{product_name}" is now {status}.'
    if reason:
        message += f" Reason: {reason}"
    return message


def action_required_message(product_name: str) -> str:
    return (
        f'Your item "{product_name}" is pending confirmation. '
        "Please go to the 'Confirmations' tab in your notifications to confirm."
    )


def notify_status_change(order, status: str, reason: str | None, seller_mobile_numbers) -> Notification:
    """
    Tell the customer their order moved to `status`.
    Must be called inside the transition's transaction.
    """
    notification = Notification.objects.create(
        user_id=order.user_id,
        order=order,
        title=STATUS_UPDATE_TITLE,
        message=status_change_message(order.product_name, status, reason),
        seller_mobile_numbers=list(seller_mobile_numbers or []),
    )
    logger.info(
        "Status notification queued",
        extra={"order_id": str(order.id), "user_id": str(order.user_id)},
    )
    return notification


def notify_action_required(order, seller_mobile_numbers) -> Notification:
    """
    Ask the customer to confirm receipt (delivery / pickup / replacement).
    """
    notification = Notification.objects.create(
        user_id=order.user_id,
        order=order,
        title=ACTION_REQUIRED_TITLE,
        message=action_required_message(order.product_name),
        seller_mobile_numbers=list(seller_mobile_numbers or []),
    )
    logger.info(
        "Action-required notification queued",
        extra={"order_id": str(order.id), "user_id": str(order.user_id)},
    )
    return notification


def notifications_for_user(user):
    return Notification.objects.filter(user=user).select_related("order").order_by("-created_at")


def mark_read(user, notification_id) -> Notification:
    from apps.utils.exceptions import NotFound

    notification = Notification.objects.filter(id=notification_id, user=user).first()
    if notification is None:
        raise NotFound("Notification not found.")
    notification.mark_read()
    return notification


def mark_all_read(user) -> int:
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True,
        read_at=timezone.now(),
        updated_at=timezone.now(),
    )


def pending_confirmations_for_user(user):
    """
    Orders waiting on the customer ("Confirmations" tab).
    """
    from apps.orders.models import Order
    from apps.orders.state_machine import CONFIRMATION_STATUSES

    return (
        Order.objects.filter(user=user, status__in=CONFIRMATION_STATUSES)
        .select_related("seller")
        .order_by("-updated_at")
    )


def purge_read(older_than_days: int | None = None) -> int:
    days = older_than_days if older_than_days is not None else settings.NOTIFICATION_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = Notification.objects.filter(is_read=True, read_at__lt=cutoff).delete()
    return deleted
