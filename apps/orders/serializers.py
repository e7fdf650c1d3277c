from rest_framework import serializers

from apps.pricing.models import ColorOption, FormatType, PrintRatio
from apps.utils.validators import validate_phone
from .models import Order, OrderCategory, OrderStatus, ReturnType


class OrderSerializer(serializers.ModelSerializer):
    seller_name = serializers.CharField(source="seller.name", read_only=True)
    seller_mobile_numbers = serializers.JSONField(source="seller.mobile_numbers", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "group_id",
            "seller",
            "seller_name",
            "seller_mobile_numbers",
            "category",
            "product",
            "product_name",
            "product_image",
            "quantity",
            "price",
            "line_total",
            "delivery_charge",
            "is_delivery_fee_paid",
            "shipping_address",
            "mobile",
            "alt_mobiles",
            "status",
            "xerox_config",
            "tracking",
            "return_type",
            "return_reason",
            "cancellation_reason",
            "rejection_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CheckoutLineSerializer(serializers.Serializer):
    """
    Either a catalog product line or a xerox job line.
    """
    category = serializers.ChoiceField(choices=OrderCategory.choices, required=False)
    product_id = serializers.UUIDField(required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)

    # xerox only
    file_name = serializers.CharField(max_length=255, required=False)
    file_url = serializers.URLField(max_length=1000, required=False, allow_null=True)
    page_count = serializers.IntegerField(min_value=1, required=False)
    paper_type = serializers.UUIDField(required=False)
    color_option = serializers.ChoiceField(choices=ColorOption.choices, required=False)
    format_type = serializers.ChoiceField(choices=FormatType.choices, required=False)
    print_ratio = serializers.ChoiceField(choices=PrintRatio.choices, default=PrintRatio.ONE_UP)
    binding_type = serializers.CharField(required=False, default="none")
    lamination_type = serializers.CharField(required=False, default="none")
    instructions = serializers.CharField(required=False, allow_blank=True, default="")

    XEROX_REQUIRED = ("file_name", "page_count", "paper_type", "color_option", "format_type")

    def validate(self, attrs):
        if attrs.get("category") == OrderCategory.XEROX:
            missing = [name for name in self.XEROX_REQUIRED if attrs.get(name) in (None, "")]
            if missing:
                raise serializers.ValidationError({name: "This field is required." for name in missing})
            attrs["paper_type"] = str(attrs["paper_type"])
        elif not attrs.get("product_id"):
            raise serializers.ValidationError({"product_id": "This field is required."})
        return attrs


class CheckoutSerializer(serializers.Serializer):
    lines = CheckoutLineSerializer(many=True, allow_empty=False)
    # category -> shop id
    sellers = serializers.DictField(child=serializers.UUIDField())
    shipping_address = serializers.DictField()
    mobile = serializers.CharField(max_length=15, validators=[validate_phone])
    alt_mobiles = serializers.ListField(
        child=serializers.CharField(max_length=15, validators=[validate_phone]),
        required=False,
        default=list,
    )


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, required=False, default="")


class ReturnRequestSerializer(ReasonSerializer):
    return_type = serializers.ChoiceField(choices=ReturnType.choices, required=False, allow_null=True)


class StatusUpdateSerializer(ReasonSerializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class ExpectedDeliverySerializer(serializers.Serializer):
    expected_delivery = serializers.DateTimeField()


class AttachDocumentSerializer(serializers.Serializer):
    file_url = serializers.URLField(max_length=1000)


def serialize_group(summary):
    """
    GroupSummary -> JSON-able dict.
    """
    return {
        "group_id": summary.group_id,
        "created_at": summary.created_at,
        "subtotal": str(summary.subtotal),
        "delivery_total": str(summary.delivery_total),
        "grand_total": str(summary.grand_total),
        "is_delivery_fee_paid": summary.is_delivery_fee_paid,
        "sellers": [
            {
                "seller_id": seller.seller_id,
                "seller_name": seller.seller_name,
                "seller_mobile_numbers": seller.seller_mobile_numbers,
                "subtotal": str(seller.subtotal),
                "delivery_charge": str(seller.delivery_charge),
                "total": str(seller.total),
                "orders": OrderSerializer(seller.orders, many=True).data,
            }
            for seller in summary.sellers
        ],
    }
