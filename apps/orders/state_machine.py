"""
Order lifecycle rules.

Everything here works on an in-memory Order and never touches the
database; OrderLifecycleService wraps it in a locked transaction.

`apply_transition` runs all checks first and only then mutates the order,
so a failed transition leaves the instance exactly as it was.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

from django.db import models
from django.utils import timezone

from apps.utils.exceptions import InvalidTransition, PreconditionFailed, ValidationFailed
from .models import OrderCategory, OrderStatus, ReturnType


class Actor(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    STAFF = "staff", "Shop staff"


@dataclass(frozen=True)
class Transition:
    target: str
    sources: FrozenSet[str]
    actor: str
    milestone: Optional[str] = None
    reason_field: Optional[str] = None
    # True: order must be a replacement, False: must not be, None: either
    replacement: Optional[bool] = None
    resets: Tuple[str, ...] = ()


def _t(target, sources, actor, **kwargs) -> Tuple[str, Transition]:
    return target, Transition(target=target, sources=frozenset(sources), actor=actor, **kwargs)


S = OrderStatus

TRANSITIONS: Dict[str, Transition] = dict([
    _t(S.PROCESSING, [S.PENDING_CONFIRMATION, S.REPLACEMENT_CONFIRMED], Actor.STAFF, milestone="confirmed"),
    _t(S.REJECTED, [S.PENDING_CONFIRMATION], Actor.STAFF, reason_field="rejection_reason"),
    _t(S.CANCELLED, [S.PENDING_CONFIRMATION], Actor.CUSTOMER, reason_field="cancellation_reason"),
    _t(S.PACKED, [S.PROCESSING], Actor.STAFF, milestone="packed"),
    _t(S.SHIPPED, [S.PACKED], Actor.STAFF, milestone="shipped"),
    _t(S.OUT_FOR_DELIVERY, [S.SHIPPED], Actor.STAFF, milestone="outForDelivery"),
    _t(
        S.PENDING_DELIVERY_CONFIRMATION, [S.OUT_FOR_DELIVERY], Actor.STAFF,
        milestone="outForDelivery", replacement=False,
    ),
    _t(
        S.PENDING_REPLACEMENT_CONFIRMATION, [S.OUT_FOR_DELIVERY], Actor.STAFF,
        milestone="outForDelivery", replacement=True,
    ),
    _t(S.DELIVERED, [S.PENDING_DELIVERY_CONFIRMATION], Actor.CUSTOMER, milestone="delivered"),
    _t(S.RETURN_REQUESTED, [S.DELIVERED], Actor.CUSTOMER, milestone="returnRequested", reason_field="return_reason"),
    _t(S.RETURN_APPROVED, [S.RETURN_REQUESTED], Actor.STAFF, milestone="returnApproved", replacement=False),
    _t(
        S.REPLACEMENT_CONFIRMED, [S.RETURN_REQUESTED], Actor.STAFF,
        milestone="replacementConfirmed", replacement=True,
        resets=("packed", "shipped", "outForDelivery", "delivered", "replacementCompleted"),
    ),
    _t(S.RETURN_REJECTED, [S.RETURN_REQUESTED], Actor.STAFF, reason_field="rejection_reason"),
    _t(S.OUT_FOR_PICKUP, [S.RETURN_APPROVED], Actor.STAFF, milestone="outForPickup"),
    _t(S.PICKED_UP, [S.OUT_FOR_PICKUP], Actor.STAFF, milestone="pickedUp"),
    _t(S.PENDING_RETURN_CONFIRMATION, [S.PICKED_UP], Actor.STAFF, milestone="pickedUp"),
    _t(S.RETURN_COMPLETED, [S.PENDING_RETURN_CONFIRMATION], Actor.CUSTOMER, milestone="returnCompleted"),
    _t(
        S.REPLACEMENT_COMPLETED, [S.PENDING_REPLACEMENT_CONFIRMATION], Actor.CUSTOMER,
        milestone="replacementCompleted",
    ),
])

# Customer gets an "Order Status Updated" notification for these
NOTIFY_STATUSES = frozenset({
    S.PROCESSING,
    S.PACKED,
    S.SHIPPED,
    S.REJECTED,
    S.RETURN_APPROVED,
    S.RETURN_REJECTED,
    S.REPLACEMENT_CONFIRMED,
})

# Reached by the shop, only the customer can move past them
CONFIRMATION_TARGETS: Dict[str, str] = {
    S.PENDING_DELIVERY_CONFIRMATION: S.DELIVERED,
    S.PENDING_RETURN_CONFIRMATION: S.RETURN_COMPLETED,
    S.PENDING_REPLACEMENT_CONFIRMATION: S.REPLACEMENT_COMPLETED,
}
CONFIRMATION_STATUSES = frozenset(CONFIRMATION_TARGETS)

# Seller dashboard "next step" button
NEXT_STATUS: Dict[str, str] = {
    S.PROCESSING: S.PACKED,
    S.PACKED: S.SHIPPED,
    S.SHIPPED: S.OUT_FOR_DELIVERY,
    S.RETURN_APPROVED: S.OUT_FOR_PICKUP,
    S.OUT_FOR_PICKUP: S.PICKED_UP,
    S.PICKED_UP: S.PENDING_RETURN_CONFIRMATION,
    S.REPLACEMENT_CONFIRMED: S.PROCESSING,
}

PRE_DELIVERY_STATUSES = frozenset({
    S.PENDING_CONFIRMATION,
    S.PROCESSING,
    S.PACKED,
    S.SHIPPED,
    S.OUT_FOR_DELIVERY,
    S.REPLACEMENT_CONFIRMED,
})

TERMINAL_STATUSES = frozenset({
    S.CANCELLED,
    S.REJECTED,
    S.RETURN_REJECTED,
    S.RETURN_COMPLETED,
    S.REPLACEMENT_COMPLETED,
})

CANCELLED_CONFIRM_MESSAGE = "This order has been cancelled by the user and cannot be confirmed."
CANNOT_CANCEL_MESSAGE = "This item cannot be cancelled as it has already been confirmed by the seller."

def is_replacement(order) -> bool:
    return order.return_type == ReturnType.REPLACEMENT


def next_status(order) -> Optional[str]:
    """
    Next fulfilment step for the shop, or None when the customer (or
    nobody) has to act next.
    """
    if order.status == S.OUT_FOR_DELIVERY:
        if is_replacement(order):
            return S.PENDING_REPLACEMENT_CONFIRMATION
        return S.PENDING_DELIVERY_CONFIRMATION
    return NEXT_STATUS.get(order.status)


def allowed_targets(order, actor: str) -> List[str]:
    return [
        t.target for t in TRANSITIONS.values()
        if t.actor == actor and order.status in t.sources and _replacement_ok(t, order)
    ]


def _replacement_ok(transition: Transition, order) -> bool:
    if transition.replacement is None:
        return True
    return transition.replacement == is_replacement(order)


def _parse_iso(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _check_return_request(order, at: datetime, return_window: timedelta):
    if order.category == OrderCategory.XEROX:
        raise PreconditionFailed("Xerox orders cannot be returned or replaced.")
    if order.status != S.DELIVERED:
        raise PreconditionFailed("Only delivered items can be returned or replaced.")

    delivered_at = _parse_iso((order.tracking or {}).get("delivered"))
    if delivered_at is None or at - delivered_at > return_window:
        raise PreconditionFailed(
            f"The return window of {return_window.days} days for this item has closed."
        )


def check_transition(
    order,
    target: str,
    actor: str,
    *,
    reason: Optional[str] = None,
    return_type: Optional[str] = None,
    at: datetime,
    return_window: timedelta,
) -> Transition:
    """
    Raise if `order` may not move to `target` right now. Returns the
    matching table row otherwise.
    """
    current = order.status

    if target == S.PROCESSING and current == S.CANCELLED:
        raise PreconditionFailed(CANCELLED_CONFIRM_MESSAGE)
    if target == S.CANCELLED and current in TERMINAL_STATUSES:
        raise PreconditionFailed(f"This order is already {current} and cannot be cancelled.")
    if target == S.CANCELLED and current != S.PENDING_CONFIRMATION:
        raise PreconditionFailed(CANNOT_CANCEL_MESSAGE)
    if target == S.RETURN_REQUESTED:
        _check_return_request(order, at, return_window)

    transition = TRANSITIONS.get(target)
    if (
        transition is None
        or transition.actor != actor
        or current not in transition.sources
        or not _replacement_ok(transition, order)
    ):
        raise InvalidTransition(f"Cannot move this order from '{current}' to '{target}'.")

    if transition.reason_field and not (reason or "").strip():
        raise ValidationFailed(f"A reason is required to mark this order as {target}.")
    if target == S.RETURN_REQUESTED and return_type not in ReturnType.values:
        raise ValidationFailed("Please choose either a refund or a replacement.")

    return transition


def apply_transition(
    order,
    target: str,
    actor: str,
    *,
    reason: Optional[str] = None,
    return_type: Optional[str] = None,
    at: datetime,
    return_window: timedelta,
) -> List[str]:
    """
    Move `order` to `target` in memory. Returns the fields to save.
    """
    transition = check_transition(
        order, target, actor,
        reason=reason, return_type=return_type, at=at, return_window=return_window,
    )

    update_fields = ["status"]
    order.status = target

    if transition.reason_field:
        setattr(order, transition.reason_field, reason.strip())
        update_fields.append(transition.reason_field)

    if target == S.RETURN_REQUESTED:
        order.return_type = return_type
        update_fields.append("return_type")

    tracking = dict(order.tracking or {})
    for field in transition.resets:
        tracking[field] = None
    # milestones are write-once; only a replacement reset clears them
    if transition.milestone and not tracking.get(transition.milestone):
        tracking[transition.milestone] = at.isoformat()
    if tracking != order.tracking:
        order.tracking = tracking
        update_fields.append("tracking")

    return update_fields
