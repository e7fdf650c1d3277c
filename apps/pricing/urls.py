# apps/pricing/urls.py
from django.urls import path

from .views import (
    DeliveryQuoteView,
    DeliveryRuleSetView,
    PaperTypeListView,
    PaperTypeReorderView,
    PrintJobQuoteView,
)

urlpatterns = [
    path("quote/delivery/", DeliveryQuoteView.as_view(), name="pricing-quote-delivery"),
    path("quote/print-job/", PrintJobQuoteView.as_view(), name="pricing-quote-print-job"),
    path("delivery-rules/<str:context>/", DeliveryRuleSetView.as_view(), name="pricing-delivery-rules"),
    path("paper-types/", PaperTypeListView.as_view(), name="pricing-paper-types"),
    path("paper-types/reorder/", PaperTypeReorderView.as_view(), name="pricing-paper-types-reorder"),
]
