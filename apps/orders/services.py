import uuid
import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from apps.catalog.models import Product
from apps.notifications.services import notify_action_required, notify_status_change
from apps.pricing.models import BindingType, ColorOption, FormatType, LaminationType, PrintRatio, RuleContext
from apps.pricing.print_jobs import calculate
from apps.pricing.services import PricingService, option_display_name
from apps.shops.models import Shop
from apps.utils.exceptions import InvalidTransition, NotFound, PreconditionFailed, ValidationFailed
from apps.utils.utils import TWO_PLACES, dict_clean, money
from . import state_machine
from .models import Order, OrderCategory, OrderStatus, default_tracking
from .state_machine import Actor

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _return_window() -> timedelta:
    return timedelta(days=settings.RETURN_WINDOW_DAYS)


class OrderLifecycleService:
    """
    Every status change goes through here.

    One transition = one transaction: lock the order row, read the shop,
    save the order, write the notification(s). If any step fails nothing
    is persisted.
    """

    @staticmethod
    def _lock(order_id) -> Order:
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Order not found.")

    @staticmethod
    def _run(order: Order, target: str, actor: str, reason=None, return_type=None) -> Order:
        previous = order.status
        update_fields = state_machine.apply_transition(
            order,
            target,
            actor,
            reason=reason,
            return_type=return_type,
            at=timezone.now(),
            return_window=_return_window(),
        )
        order.save(update_fields=update_fields + ["updated_at"])

        # shop read stays inside the transaction
        shop = Shop.objects.get(pk=order.seller_id)
        if target in state_machine.NOTIFY_STATUSES:
            notify_status_change(order, target, reason, shop.mobile_numbers)
        if target in state_machine.CONFIRMATION_STATUSES:
            notify_action_required(order, shop.mobile_numbers)

        logger.info(
            f"Order status {previous} -> {target} by {actor}",
            extra={"order_id": str(order.id), "group_id": str(order.group_id)},
        )
        return order

    @staticmethod
    @transaction.atomic
    def transition(order_id, target: str, actor: str, *, reason=None, return_type=None) -> Order:
        order = OrderLifecycleService._lock(order_id)
        return OrderLifecycleService._run(order, target, actor, reason, return_type)

    # --- customer side ---

    @staticmethod
    def cancel(order_id, reason: str) -> Order:
        return OrderLifecycleService.transition(
            order_id, OrderStatus.CANCELLED, Actor.CUSTOMER, reason=reason
        )

    @staticmethod
    def request_return(order_id, reason: str, return_type: str) -> Order:
        return OrderLifecycleService.transition(
            order_id, OrderStatus.RETURN_REQUESTED, Actor.CUSTOMER,
            reason=reason, return_type=return_type,
        )

    @staticmethod
    @transaction.atomic
    def confirm_receipt(order_id) -> Order:
        """
        Customer says "yes, I got it": delivery, pickup or replacement.
        """
        order = OrderLifecycleService._lock(order_id)
        target = state_machine.CONFIRMATION_TARGETS.get(order.status)
        if target is None:
            raise InvalidTransition(f"There is nothing to confirm for an order in '{order.status}'.")
        return OrderLifecycleService._run(order, target, Actor.CUSTOMER)

    # --- shop side ---

    @staticmethod
    @transaction.atomic
    def advance(order_id) -> Order:
        order = OrderLifecycleService._lock(order_id)
        target = state_machine.next_status(order)
        if target is None:
            raise InvalidTransition(f"No next step for an order in '{order.status}'.")
        return OrderLifecycleService._run(order, target, Actor.STAFF)

    @staticmethod
    def accept(order_id) -> Order:
        return OrderLifecycleService.transition(order_id, OrderStatus.PROCESSING, Actor.STAFF)

    @staticmethod
    def reject(order_id, reason: str) -> Order:
        return OrderLifecycleService.transition(
            order_id, OrderStatus.REJECTED, Actor.STAFF, reason=reason
        )

    @staticmethod
    @transaction.atomic
    def approve_return(order_id) -> Order:
        order = OrderLifecycleService._lock(order_id)
        if state_machine.is_replacement(order):
            target = OrderStatus.REPLACEMENT_CONFIRMED
        else:
            target = OrderStatus.RETURN_APPROVED
        return OrderLifecycleService._run(order, target, Actor.STAFF)

    @staticmethod
    def reject_return(order_id, reason: str) -> Order:
        return OrderLifecycleService.transition(
            order_id, OrderStatus.RETURN_REJECTED, Actor.STAFF, reason=reason
        )

    @staticmethod
    @transaction.atomic
    def set_expected_delivery(order_id, expected_at) -> Order:
        """
        Estimated delivery date shown to the customer. Not a milestone,
        so the shop may revise it until the item is delivered.
        """
        order = OrderLifecycleService._lock(order_id)
        if order.status not in state_machine.PRE_DELIVERY_STATUSES:
            raise PreconditionFailed("Expected delivery can only be set before the item is delivered.")

        tracking = dict(order.tracking or default_tracking())
        tracking["expectedDelivery"] = expected_at.isoformat()
        order.tracking = tracking
        order.save(update_fields=["tracking", "updated_at"])
        return order


@dataclass
class _PricedLine:
    category: str
    seller: Shop
    product_name: str
    quantity: int
    price: Decimal
    product: Optional[Product] = None
    product_image: Optional[str] = None
    xerox_config: Optional[dict] = None
    delivery_charge: Decimal = ZERO


def _split_evenly(total: Decimal, parts: int) -> List[Decimal]:
    """
    Split `total` into `parts` paise amounts that add back up to `total`.
    Shares are rounded down so the remainder on the last part is never
    negative.
    """
    if parts <= 0:
        return []
    total = money(total)
    share = (total / parts).quantize(TWO_PLACES, rounding=ROUND_DOWN)
    shares = [share] * parts
    shares[-1] = total - share * (parts - 1)
    return shares


class CheckoutService:

    @staticmethod
    def _resolve_shop(sellers: Dict[str, str], category: str) -> Shop:
        shop_id = (sellers or {}).get(category)
        shop = None
        if shop_id:
            try:
                shop = Shop.objects.filter(pk=shop_id, is_active=True).first()
            except (DjangoValidationError, ValueError):
                shop = None
        if shop is None or not shop.offers(category):
            raise ValidationFailed(f"No shop is available to fulfil {category} items.")
        return shop

    @staticmethod
    def _price_product_lines(product_lines, sellers) -> List[_PricedLine]:
        ids = [str(line["product_id"]) for line in product_lines]
        try:
            products = {str(pk): p for pk, p in Product.objects.in_bulk(ids).items()}
        except (DjangoValidationError, ValueError):
            raise ValidationFailed("One or more items in your cart are invalid.")

        shops: Dict[str, Shop] = {}
        priced = []
        for line in product_lines:
            product = products.get(str(line["product_id"]))
            if product is None or not product.is_active:
                raise ValidationFailed(f"Item {line['product_id']} is no longer available.")

            quantity = int(line.get("quantity") or 0)
            if quantity < 1:
                raise ValidationFailed(f"Quantity for {product.name} must be at least 1.")

            if product.category not in shops:
                shops[product.category] = CheckoutService._resolve_shop(sellers, product.category)

            priced.append(_PricedLine(
                category=product.category,
                seller=shops[product.category],
                product=product,
                product_name=product.name,
                product_image=product.image_url,
                quantity=quantity,
                price=money(product.effective_price),
            ))
        return priced

    @staticmethod
    def _price_xerox_lines(xerox_lines, sellers) -> List[_PricedLine]:
        if not xerox_lines:
            return []
        shop = CheckoutService._resolve_shop(sellers, OrderCategory.XEROX)

        priced = []
        for line in xerox_lines:
            quantity = int(line.get("quantity") or 0)
            page_count = int(line.get("page_count") or 0)
            if quantity < 1:
                raise ValidationFailed("Number of copies must be at least 1.")
            if page_count < 1:
                raise ValidationFailed("Page count is missing for an uploaded document.")

            binding_id = line.get("binding_type") or "none"
            lamination_id = line.get("lamination_type") or "none"
            paper = PricingService.validate_print_selection(
                line.get("paper_type"),
                line.get("color_option"),
                line.get("format_type"),
                line.get("print_ratio"),
                binding_type_id=binding_id,
                lamination_type_id=lamination_id,
            )
            binding = PricingService.lookup_option(BindingType, binding_id)
            lamination = PricingService.lookup_option(LaminationType, lamination_id)

            price = calculate(
                paper,
                line["color_option"],
                line["format_type"],
                line["print_ratio"],
                binding,
                lamination,
                page_count,
                quantity,
            )
            # frozen per-copy price drives both the line total and the snapshot
            unit_price = money(price.unit_price)
            xerox_config = dict_clean({
                "page_count": page_count,
                "paper_type": str(paper.id),
                "paper_type_name": paper.name,
                "color_option": line["color_option"],
                "color_option_name": option_display_name(ColorOption, line["color_option"]),
                "format_type": line["format_type"],
                "format_type_name": option_display_name(FormatType, line["format_type"]),
                "print_ratio": line["print_ratio"],
                "print_ratio_name": option_display_name(PrintRatio, line["print_ratio"]),
                "binding_type": str(binding.id) if binding else "none",
                "binding_type_name": binding.name if binding else "N/A",
                "lamination_type": str(lamination.id) if lamination else "none",
                "lamination_type_name": lamination.name if lamination else "N/A",
                "quantity": quantity,
                "instructions": (line.get("instructions") or "").strip(),
                "price_per_page": str(price.price_per_page),
                "final_price": str(unit_price * quantity),
            })

            priced.append(_PricedLine(
                category=OrderCategory.XEROX,
                seller=shop,
                product_name=line.get("file_name") or "Xerox document",
                product_image=line.get("file_url") or None,
                quantity=quantity,
                price=unit_price,
                xerox_config=xerox_config,
            ))
        return priced

    @staticmethod
    def _apportion_delivery(lines: List[_PricedLine]) -> None:
        """
        One delivery charge per category (items rules) and one for all
        xerox lines (xerox rules), split equally across the lines.
        """
        buckets: Dict[str, List[_PricedLine]] = OrderedDict()
        for line in lines:
            buckets.setdefault(line.category, []).append(line)

        for category, bucket in buckets.items():
            context = RuleContext.XEROX if category == OrderCategory.XEROX else RuleContext.ITEMS
            subtotal = sum((line.price * line.quantity for line in bucket), ZERO)
            charge = PricingService.quote_delivery(context, subtotal).charge
            for line, share in zip(bucket, _split_evenly(charge, len(bucket))):
                line.delivery_charge = share

    @staticmethod
    def place_order(user, lines, sellers, shipping_address, mobile, alt_mobiles=None) -> List[Order]:
        """
        Turn a cart into order lines sharing one group_id.

        lines: product lines {"product_id", "quantity"} and xerox lines
               {"category": "xerox", "file_name", "page_count", "paper_type", ...}
        sellers: category -> shop id
        """
        if not lines:
            raise ValidationFailed("Your cart is empty.")

        product_lines = [l for l in lines if l.get("category") != OrderCategory.XEROX]
        xerox_lines = [l for l in lines if l.get("category") == OrderCategory.XEROX]

        priced = CheckoutService._price_product_lines(product_lines, sellers)
        priced += CheckoutService._price_xerox_lines(xerox_lines, sellers)
        CheckoutService._apportion_delivery(priced)

        group_id = uuid.uuid4()
        tracking = default_tracking()
        tracking["ordered"] = timezone.now().isoformat()

        orders = [
            Order(
                group_id=group_id,
                user=user,
                seller=line.seller,
                category=line.category,
                product=line.product,
                product_name=line.product_name,
                product_image=line.product_image,
                quantity=line.quantity,
                price=line.price,
                delivery_charge=line.delivery_charge,
                shipping_address=shipping_address or {},
                mobile=mobile,
                alt_mobiles=list(alt_mobiles or []),
                status=OrderStatus.PENDING_CONFIRMATION,
                xerox_config=line.xerox_config,
                tracking=dict(tracking),
            )
            for line in priced
        ]

        with transaction.atomic():
            Order.objects.bulk_create(orders)

        logger.info(
            f"Checkout placed {len(orders)} order lines",
            extra={"group_id": str(group_id), "user_id": str(user.id)},
        )
        return orders

    @staticmethod
    @transaction.atomic
    def attach_document(order_id, url: str, user=None) -> Order:
        """
        Store the uploaded document URL on a xerox line.
        """
        qs = Order.objects.select_for_update()
        if user is not None:
            qs = qs.filter(user=user)
        try:
            order = qs.get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Order not found.")

        if not order.is_xerox:
            raise ValidationFailed("Documents can only be attached to xerox orders.")

        order.product_image = url
        order.save(update_fields=["product_image", "updated_at"])
        return order


@dataclass
class SellerGroup:
    seller_id: str
    seller_name: str
    seller_mobile_numbers: List[str]
    orders: List[Order] = field(default_factory=list)
    subtotal: Decimal = ZERO
    delivery_charge: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.delivery_charge


@dataclass
class GroupSummary:
    group_id: str
    orders: List[Order]
    sellers: List[SellerGroup]
    subtotal: Decimal
    delivery_total: Decimal
    is_delivery_fee_paid: bool

    @property
    def grand_total(self) -> Decimal:
        return self.subtotal + self.delivery_total

    @property
    def created_at(self):
        return self.orders[0].created_at if self.orders else None


def summarize_group(group_id, orders: List[Order]) -> GroupSummary:
    """
    Aggregates from the frozen per-line price / quantity / delivery_charge.
    `orders` should be oldest first.
    """
    sellers: Dict[str, SellerGroup] = OrderedDict()
    for order in orders:
        key = str(order.seller_id)
        if key not in sellers:
            sellers[key] = SellerGroup(
                seller_id=key,
                seller_name=order.seller.name,
                seller_mobile_numbers=list(order.seller.mobile_numbers or []),
            )
        bucket = sellers[key]
        bucket.orders.append(order)
        bucket.subtotal += order.line_total
        bucket.delivery_charge += order.delivery_charge

    return GroupSummary(
        group_id=str(group_id),
        orders=list(orders),
        sellers=list(sellers.values()),
        subtotal=sum((s.subtotal for s in sellers.values()), ZERO),
        delivery_total=sum((s.delivery_charge for s in sellers.values()), ZERO),
        is_delivery_fee_paid=bool(orders) and all(o.is_delivery_fee_paid for o in orders),
    )


class OrderGroupService:

    @staticmethod
    @transaction.atomic
    def settle_delivery_fee(group_id) -> int:
        """
        Mark the whole group's delivery fee as collected.
        Safe to call again; status of the lines does not matter.
        """
        try:
            ids = list(
                Order.objects.select_for_update()
                .filter(group_id=group_id)
                .values_list("id", flat=True)
            )
        except (DjangoValidationError, ValueError):
            ids = []
        if not ids:
            raise NotFound("No orders found for this group.")

        Order.objects.filter(id__in=ids).update(
            is_delivery_fee_paid=True,
            updated_at=timezone.now(),
        )
        logger.info(f"Delivery fee settled for {len(ids)} lines", extra={"group_id": str(group_id)})
        return len(ids)

    @staticmethod
    def group_summary(group_id, user=None, seller=None) -> GroupSummary:
        qs = Order.objects.select_related("seller").filter(group_id=group_id)
        if user is not None:
            qs = qs.filter(user=user)
        if seller is not None:
            qs = qs.filter(seller=seller)
        try:
            orders = list(qs.order_by("created_at", "id"))
        except (DjangoValidationError, ValueError):
            orders = []
        if not orders:
            raise NotFound("No orders found for this group.")
        return summarize_group(group_id, orders)

    @staticmethod
    def _summaries(qs) -> List[GroupSummary]:
        grouped: Dict[str, List[Order]] = defaultdict(list)
        for order in qs.select_related("seller").order_by("created_at", "id"):
            grouped[str(order.group_id)].append(order)
        summaries = [summarize_group(gid, orders) for gid, orders in grouped.items()]
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        return summaries

    @staticmethod
    def groups_for_user(user) -> List[GroupSummary]:
        return OrderGroupService._summaries(Order.objects.filter(user=user))

    @staticmethod
    def groups_for_seller(shop) -> List[GroupSummary]:
        """
        Seller dashboard: only this shop's lines of each group.
        """
        return OrderGroupService._summaries(Order.objects.filter(seller=shop))
