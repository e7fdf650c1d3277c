# apps/pricing/models.py
from django.db import models

from apps.utils.models import TimestampedModel


class RuleContext(models.TextChoices):
    ITEMS = "items", "Stationary / Books / Electronics"
    XEROX = "xerox", "Xerox"


class ColorOption(models.TextChoices):
    BW = "bw", "Black & White"
    COLOR = "color", "Gradient / Colour"


class FormatType(models.TextChoices):
    FRONT = "front", "Front Only"
    BOTH = "both", "Front and Back"


class PrintRatio(models.TextChoices):
    ONE_UP = "1:1", "1:1 (One page per sheet)"
    TWO_UP = "1:2", "1:2 (Two pages per sheet)"


class DeliveryChargeRule(TimestampedModel):
    """
    One tier of a delivery charge rule set.
    `to_amount = NULL` means "and above".
    Rule sets are validated as a whole before they are saved
    (see PricingService.replace_delivery_rules).
    """
    context = models.CharField(max_length=10, choices=RuleContext.choices, db_index=True)
    from_amount = models.DecimalField(max_digits=10, decimal_places=2)
    to_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    charge = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["context", "from_amount"]

    def __str__(self):
        upper = self.to_amount if self.to_amount is not None else "∞"
        return f"[{self.context}] {self.from_amount} - {upper}: {self.charge}"


class PrintOption(TimestampedModel):
    """
    Flat per-copy finishing option (binding / lamination).
    """
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} (Rs {self.price})"


class BindingType(PrintOption):
    pass


class LaminationType(PrintOption):
    pass


class PaperType(TimestampedModel):
    """
    Paper with its four per-page rates.
    Empty allowed_* lists mean every option is allowed for this paper.
    """
    name = models.CharField(max_length=100)
    position = models.PositiveIntegerField(default=0)

    price_bw_front = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_bw_both = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_color_front = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_color_both = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    allowed_color_options = models.JSONField(default=list, blank=True)
    allowed_format_types = models.JSONField(default=list, blank=True)
    allowed_print_ratios = models.JSONField(default=list, blank=True)
    binding_types = models.ManyToManyField(BindingType, related_name="paper_types", blank=True)
    lamination_types = models.ManyToManyField(LaminationType, related_name="paper_types", blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["position", "name"]

    def __str__(self):
        return self.name
