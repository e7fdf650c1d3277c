from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    CheckoutView,
    CustomerGroupDetailView,
    CustomerGroupListView,
    OrderViewSet,
    SellerGroupListView,
    SellerOrderViewSet,
    SettleDeliveryFeeView,
)

router = DefaultRouter()
router.register(r"seller/lines", SellerOrderViewSet, basename="seller-order")
router.register(r"lines", OrderViewSet, basename="order")

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("groups/", CustomerGroupListView.as_view(), name="order-group-list"),
    path("groups/<uuid:group_id>/", CustomerGroupDetailView.as_view(), name="order-group-detail"),
    path(
        "groups/<uuid:group_id>/settle-delivery-fee/",
        SettleDeliveryFeeView.as_view(),
        name="order-group-settle",
    ),
    path("seller/groups/", SellerGroupListView.as_view(), name="seller-group-list"),
    path("", include(router.urls)),
]
