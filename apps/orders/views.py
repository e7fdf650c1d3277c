import logging

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, views, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.accounts.models import Role
from apps.accounts.permissions import IsAdminOrEmployee, IsShopStaff
from apps.shops.models import Shop
from apps.utils.exceptions import NotFound
from apps.utils.throttle import BurstRateThrottle
from .models import Order
from .serializers import (
    AttachDocumentSerializer,
    CheckoutSerializer,
    ExpectedDeliverySerializer,
    OrderSerializer,
    ReasonSerializer,
    ReturnRequestSerializer,
    StatusUpdateSerializer,
    serialize_group,
)
from .services import CheckoutService, OrderGroupService, OrderLifecycleService
from .state_machine import Actor

logger = logging.getLogger(__name__)


def _staffed_shops(user):
    if user.has_role(Role.ADMIN):
        return Shop.objects.all()
    return Shop.objects.filter(Q(owners=user) | Q(employees=user)).distinct()


class CheckoutView(views.APIView):
    """
    POST /api/v1/orders/checkout/

    SEQUENCE:
    1. Idempotency check (cache)
    2. Payload validation
    3. Pricing + atomic creation of all lines (CheckoutService)
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstRateThrottle]

    def post(self, request):
        idempotency_key = request.headers.get("X-Idempotency-Key")
        if not idempotency_key:
            return Response(
                {"error": "X-Idempotency-Key header is required", "code": "validation_failed"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        cache_key = f"checkout_idempotency_{request.user.id}_{idempotency_key}"
        # add() is atomic: only the first request gets the key
        if not cache.add(cache_key, "processing", timeout=settings.CHECKOUT_IDEMPOTENCY_TTL):
            return Response(
                {"error": "Duplicate request detected", "code": "duplicate_request"},
                status=status.HTTP_409_CONFLICT,
            )

        try:
            serializer = CheckoutSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            orders = CheckoutService.place_order(
                user=request.user,
                lines=data["lines"],
                sellers={category: str(shop_id) for category, shop_id in data["sellers"].items()},
                shipping_address=data["shipping_address"],
                mobile=data["mobile"],
                alt_mobiles=data["alt_mobiles"],
            )
        except Exception:
            # Release lock so the customer can retry after fixing the cart
            cache.delete(cache_key)
            raise

        summary = OrderGroupService.group_summary(orders[0].group_id, user=request.user)
        return Response(
            {
                "status": "success",
                "message": "Order placed successfully",
                "data": serialize_group(summary),
            },
            status=status.HTTP_201_CREATED,
        )


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Customer side: own order lines + the actions a customer may take.
    """
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["status", "category", "group_id"]

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user).select_related("seller")

    def _respond(self, order):
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        order = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.cancel(order.id, serializer.validated_data["reason"])
        return self._respond(order)

    @action(detail=True, methods=["post"], url_path="return")
    def request_return(self, request, pk=None):
        order = self.get_object()
        serializer = ReturnRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.request_return(
            order.id,
            serializer.validated_data["reason"],
            serializer.validated_data.get("return_type"),
        )
        return self._respond(order)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        order = self.get_object()
        order = OrderLifecycleService.confirm_receipt(order.id)
        return self._respond(order)

    @action(detail=True, methods=["post"])
    def document(self, request, pk=None):
        order = self.get_object()
        serializer = AttachDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = CheckoutService.attach_document(
            order.id, serializer.validated_data["file_url"], user=request.user
        )
        return self._respond(order)


class SellerOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Shop side: lines of the shops this user owns / works at (all for admin).
    """
    serializer_class = OrderSerializer
    permission_classes = [IsShopStaff]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["seller", "status", "category", "group_id"]

    def get_queryset(self):
        shops = _staffed_shops(self.request.user)
        return Order.objects.filter(seller__in=shops).select_related("seller")

    def _respond(self, order):
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        """
        Generic staff transition: { "status": "...", "reason": "..." }
        """
        order = self.get_object()
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.transition(
            order.id,
            serializer.validated_data["status"],
            Actor.STAFF,
            reason=serializer.validated_data["reason"],
        )
        return self._respond(order)

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        order = self.get_object()
        return self._respond(OrderLifecycleService.accept(order.id))

    @action(detail=True, methods=["post"])
    def advance(self, request, pk=None):
        order = self.get_object()
        return self._respond(OrderLifecycleService.advance(order.id))

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        order = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.reject(order.id, serializer.validated_data["reason"])
        return self._respond(order)

    @action(detail=True, methods=["post"], url_path="approve-return")
    def approve_return(self, request, pk=None):
        order = self.get_object()
        return self._respond(OrderLifecycleService.approve_return(order.id))

    @action(detail=True, methods=["post"], url_path="reject-return")
    def reject_return(self, request, pk=None):
        order = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.reject_return(order.id, serializer.validated_data["reason"])
        return self._respond(order)

    @action(detail=True, methods=["post"], url_path="expected-delivery")
    def expected_delivery(self, request, pk=None):
        order = self.get_object()
        serializer = ExpectedDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderLifecycleService.set_expected_delivery(
            order.id, serializer.validated_data["expected_delivery"]
        )
        return self._respond(order)


class CustomerGroupListView(views.APIView):
    """
    GET /api/v1/orders/groups/  (order history, one entry per checkout)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        summaries = OrderGroupService.groups_for_user(request.user)
        return Response([serialize_group(s) for s in summaries])


class CustomerGroupDetailView(views.APIView):
    """
    GET /api/v1/orders/groups/<group_id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, group_id):
        summary = OrderGroupService.group_summary(group_id, user=request.user)
        return Response(serialize_group(summary))


class SellerGroupListView(views.APIView):
    """
    GET /api/v1/orders/seller/groups/?shop=<shop_id>
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        shops = _staffed_shops(request.user)
        shop_id = request.query_params.get("shop")
        if shop_id:
            try:
                shop = shops.filter(pk=shop_id).first()
            except (DjangoValidationError, ValueError):
                shop = None
            if shop is None:
                raise NotFound("Shop not found.")
            shops = [shop]

        data = []
        for shop in shops:
            data.extend(serialize_group(s) for s in OrderGroupService.groups_for_seller(shop))
        return Response(data)


class SettleDeliveryFeeView(views.APIView):
    """
    POST /api/v1/orders/groups/<group_id>/settle-delivery-fee/
    """
    permission_classes = [IsAdminOrEmployee]

    def post(self, request, group_id):
        updated = OrderGroupService.settle_delivery_fee(group_id)
        return Response({"status": "settled", "group_id": str(group_id), "orders": updated})
