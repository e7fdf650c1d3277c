# apps/pricing/serializers.py
from rest_framework import serializers

from .models import (
    BindingType,
    ColorOption,
    FormatType,
    LaminationType,
    PaperType,
    PrintRatio,
    RuleContext,
)
from .rules import ChargeRule


class ChargeRuleSerializer(serializers.Serializer):
    from_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    to_amount = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True, required=False)
    charge = serializers.DecimalField(max_digits=10, decimal_places=2)

    def to_rule(self, data) -> ChargeRule:
        return ChargeRule.build(data["from_amount"], data.get("to_amount"), data["charge"])


class DeliveryRuleSetSerializer(serializers.Serializer):
    rules = ChargeRuleSerializer(many=True)

    def to_rules(self):
        item = ChargeRuleSerializer()
        return [item.to_rule(row) for row in self.validated_data["rules"]]


class DeliveryQuoteRequestSerializer(serializers.Serializer):
    context = serializers.ChoiceField(choices=RuleContext.choices, default=RuleContext.ITEMS)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    strict = serializers.BooleanField(default=False)


class PrintQuoteRequestSerializer(serializers.Serializer):
    """
    Option ids are passed through as-is; unknown ids just price at zero.
    """
    paper_type = serializers.CharField(allow_blank=True, required=False, default="")
    color_option = serializers.ChoiceField(choices=ColorOption.choices, default=ColorOption.BW)
    format_type = serializers.ChoiceField(choices=FormatType.choices, default=FormatType.FRONT)
    print_ratio = serializers.ChoiceField(choices=PrintRatio.choices, default=PrintRatio.ONE_UP)
    binding_type = serializers.CharField(allow_blank=True, required=False, default="none")
    lamination_type = serializers.CharField(allow_blank=True, required=False, default="none")
    page_count = serializers.IntegerField(min_value=0, default=0)
    quantity = serializers.IntegerField(min_value=1, default=1)


class PrintOptionSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)


class PaperTypeSerializer(serializers.ModelSerializer):
    binding_types = serializers.SerializerMethodField()
    lamination_types = serializers.SerializerMethodField()

    class Meta:
        model = PaperType
        fields = [
            "id",
            "name",
            "position",
            "price_bw_front",
            "price_bw_both",
            "price_color_front",
            "price_color_both",
            "allowed_color_options",
            "allowed_format_types",
            "allowed_print_ratios",
            "binding_types",
            "lamination_types",
        ]

    def _options(self, qs, model):
        # empty relation = every option allowed
        if not qs.exists():
            qs = model.objects.all()
        return PrintOptionSerializer(qs, many=True).data

    def get_binding_types(self, obj):
        return self._options(obj.binding_types.all(), BindingType)

    def get_lamination_types(self, obj):
        return self._options(obj.lamination_types.all(), LaminationType)


class PaperPositionSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    position = serializers.IntegerField(min_value=0)


class PaperReorderSerializer(serializers.Serializer):
    items = PaperPositionSerializer(many=True, allow_empty=False)
