# apps/pricing/views.py
from rest_framework import generics, permissions, status, views
from rest_framework.response import Response

from apps.accounts.permissions import IsAdminOrEmployee
from apps.utils.exceptions import ValidationFailed
from .models import PaperType, RuleContext
from .serializers import (
    DeliveryQuoteRequestSerializer,
    DeliveryRuleSetSerializer,
    PaperReorderSerializer,
    PaperTypeSerializer,
    PrintQuoteRequestSerializer,
)
from .services import PricingService


def _str(value):
    return None if value is None else str(value)


class DeliveryQuoteView(views.APIView):
    """
    POST /api/v1/pricing/quote/delivery/
    body: { "context": "items|xerox", "subtotal": "350.00", "strict": false }
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = DeliveryQuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        quote = PricingService.quote_delivery(
            data["context"], data["subtotal"], strict=data["strict"]
        )
        return Response({
            "charge": str(quote.charge),
            "next_tier_info": quote.next_tier_info,
            "next_tier_amount": _str(quote.next_tier_amount),
            "next_tier_charge": _str(quote.next_tier_charge),
        })


class PrintJobQuoteView(views.APIView):
    """
    POST /api/v1/pricing/quote/print-job/
    Live price while the customer is picking xerox options.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = PrintQuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        price = PricingService.quote_print_job(
            paper_type_id=data["paper_type"],
            color_option=data["color_option"],
            format_type=data["format_type"],
            print_ratio=data["print_ratio"],
            binding_type_id=data["binding_type"],
            lamination_type_id=data["lamination_type"],
            page_count=data["page_count"],
            quantity=data["quantity"],
        )
        return Response({
            "price_per_page": str(price.price_per_page),
            "binding_cost": str(price.binding_cost),
            "lamination_cost": str(price.lamination_cost),
            "physical_sheets": price.physical_sheets,
            "printing_cost": str(price.printing_cost),
            "single_copy_price": str(price.single_copy_price),
            "final_price": str(price.final_price),
        })


class DeliveryRuleSetView(views.APIView):
    """
    GET /api/v1/pricing/delivery-rules/<context>/
    PUT /api/v1/pricing/delivery-rules/<context>/   body: { "rules": [...] }
    """
    permission_classes = [IsAdminOrEmployee]

    def _check_context(self, context):
        if context not in RuleContext.values:
            raise ValidationFailed(f"Unknown rule context '{context}'.")

    def get(self, request, context):
        self._check_context(context)
        rules = PricingService.delivery_rules(context)
        return Response({"context": context, "rules": [r.as_dict() for r in rules]})

    def put(self, request, context):
        self._check_context(context)
        serializer = DeliveryRuleSetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rules = PricingService.replace_delivery_rules(context, serializer.to_rules())
        return Response({"context": context, "rules": [r.as_dict() for r in rules]})


class PaperTypeListView(generics.ListAPIView):
    """
    GET /api/v1/pricing/paper-types/
    """
    serializer_class = PaperTypeSerializer
    permission_classes = [permissions.AllowAny]
    pagination_class = None

    def get_queryset(self):
        return PaperType.objects.filter(is_active=True).prefetch_related(
            "binding_types", "lamination_types"
        )


class PaperTypeReorderView(views.APIView):
    """
    POST /api/v1/pricing/paper-types/reorder/
    body: { "items": [{ "id": "<uuid>", "position": 0 }, ...] }
    """
    permission_classes = [IsAdminOrEmployee]

    def post(self, request):
        serializer = PaperReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updates = [(str(item["id"]), item["position"]) for item in serializer.validated_data["items"]]
        PricingService.reorder_paper_types(updates)
        return Response({"status": "reordered", "count": len(updates)}, status=status.HTTP_200_OK)
