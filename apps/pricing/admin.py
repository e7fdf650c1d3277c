from django.contrib import admin

from .models import BindingType, DeliveryChargeRule, LaminationType, PaperType


@admin.register(DeliveryChargeRule)
class DeliveryChargeRuleAdmin(admin.ModelAdmin):
    """
    Read-only listing. Rule sets are replaced as a whole through the API
    so the overlap check always runs.
    """
    list_display = ("context", "from_amount", "to_amount", "charge")
    list_filter = ("context",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(PaperType)
class PaperTypeAdmin(admin.ModelAdmin):
    list_display = (
        "name", "position",
        "price_bw_front", "price_bw_both",
        "price_color_front", "price_color_both",
        "is_active",
    )
    list_editable = ("position",)
    list_filter = ("is_active",)
    filter_horizontal = ("binding_types", "lamination_types")


@admin.register(BindingType, LaminationType)
class PrintOptionAdmin(admin.ModelAdmin):
    list_display = ("name", "price")
    search_fields = ("name",)
