# apps/pricing/services.py
import logging
from typing import Iterable, List, Optional, Tuple

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from apps.utils.exceptions import NotFound, ValidationFailed
from .models import (
    BindingType,
    ColorOption,
    DeliveryChargeRule,
    FormatType,
    LaminationType,
    PaperType,
    PrintRatio,
    RuleContext,
)
from .print_jobs import PrintJobPrice, calculate
from .rules import ChargeRule, DeliveryCharge, evaluate, validate_rule_set

logger = logging.getLogger(__name__)

NONE_OPTION = "none"


class PricingService:
    """
    Storage-facing side of pricing: loads the live configuration and hands
    it to the pure calculators in rules.py / print_jobs.py.
    """

    # ------------------------------------------------------------------
    # Delivery rules
    # ------------------------------------------------------------------
    @staticmethod
    def delivery_rules(context: str) -> List[ChargeRule]:
        rows = DeliveryChargeRule.objects.filter(context=context).order_by("from_amount")
        return [
            ChargeRule(from_amount=r.from_amount, to_amount=r.to_amount, charge=r.charge)
            for r in rows
        ]

    @staticmethod
    def quote_delivery(context: str, subtotal, *, strict: bool = False) -> DeliveryCharge:
        return evaluate(PricingService.delivery_rules(context), subtotal, strict=strict)

    @staticmethod
    @transaction.atomic
    def replace_delivery_rules(context: str, rules: Iterable[ChargeRule]) -> List[ChargeRule]:
        """
        Swap the whole rule set of a context in one go.
        Validation runs before anything is written.
        """
        if context not in RuleContext.values:
            raise ValidationFailed(f"Unknown rule context '{context}'.")

        sorted_rules = validate_rule_set(rules)

        DeliveryChargeRule.objects.filter(context=context).delete()
        DeliveryChargeRule.objects.bulk_create([
            DeliveryChargeRule(
                context=context,
                from_amount=rule.from_amount,
                to_amount=rule.to_amount,
                charge=rule.charge,
            )
            for rule in sorted_rules
        ])

        logger.info("Delivery rules for '%s' replaced (%d tiers)", context, len(sorted_rules))
        return sorted_rules

    # ------------------------------------------------------------------
    # Print jobs
    # ------------------------------------------------------------------
    @staticmethod
    def lookup_option(model, option_id):
        if not option_id or option_id == NONE_OPTION:
            return None
        try:
            return model.objects.filter(pk=option_id).first()
        except (ValueError, TypeError, DjangoValidationError):
            # malformed id; treat like an unknown option
            return None

    @staticmethod
    def quote_print_job(
        paper_type_id,
        color_option: str,
        format_type: str,
        print_ratio: str,
        binding_type_id=None,
        lamination_type_id=None,
        page_count: int = 0,
        quantity: int = 1,
    ) -> PrintJobPrice:
        """
        Interactive quote. Unknown options price at zero, never an error.
        """
        paper = PricingService.lookup_option(PaperType, paper_type_id)
        binding = PricingService.lookup_option(BindingType, binding_type_id)
        lamination = PricingService.lookup_option(LaminationType, lamination_type_id)
        return calculate(
            paper, color_option, format_type, print_ratio,
            binding, lamination, page_count, quantity,
        )

    @staticmethod
    def validate_print_selection(
        paper_type_id,
        color_option: str,
        format_type: str,
        print_ratio: str,
        binding_type_id=None,
        lamination_type_id=None,
    ) -> PaperType:
        """
        Checkout-time check that the chosen options exist and are offered
        for the chosen paper.
        """
        paper = PricingService.lookup_option(PaperType, paper_type_id)
        if paper is None or not paper.is_active:
            raise ValidationFailed("Selected paper type is not available.")

        checks = [
            (color_option, ColorOption.values, paper.allowed_color_options, "colour option"),
            (format_type, FormatType.values, paper.allowed_format_types, "format"),
            (print_ratio, PrintRatio.values, paper.allowed_print_ratios, "print ratio"),
        ]
        for value, known, allowed, label in checks:
            if value not in known:
                raise ValidationFailed(f"Unknown {label} '{value}'.")
            if allowed and value not in allowed:
                raise ValidationFailed(f"The {label} '{value}' is not available for {paper.name}.")

        for option_id, model, relation, label in (
            (binding_type_id, BindingType, paper.binding_types, "binding"),
            (lamination_type_id, LaminationType, paper.lamination_types, "lamination"),
        ):
            if not option_id or option_id == NONE_OPTION:
                continue
            option = PricingService.lookup_option(model, option_id)
            if option is None:
                raise ValidationFailed(f"Selected {label} is not available.")
            if relation.exists() and not relation.filter(pk=option.pk).exists():
                raise ValidationFailed(f"The {label} '{option.name}' is not available for {paper.name}.")

        return paper

    @staticmethod
    @transaction.atomic
    def reorder_paper_types(updates: List[Tuple[str, int]]) -> None:
        """
        Apply display positions for several paper types as one batch.
        """
        ids = [str(paper_id) for paper_id, _ in updates]
        papers = PaperType.objects.select_for_update().in_bulk(ids)
        found = {str(pk) for pk in papers}
        missing = [paper_id for paper_id in ids if paper_id not in found]
        if missing:
            raise NotFound(f"Paper type(s) not found: {', '.join(missing)}")

        lookup = {str(pk): paper for pk, paper in papers.items()}
        for paper_id, position in updates:
            lookup[str(paper_id)].position = position
        PaperType.objects.bulk_update(list(lookup.values()), ["position"])
        logger.info("Reordered %d paper types", len(updates))


def option_display_name(choices, value: Optional[str]) -> str:
    if not value or value == NONE_OPTION:
        return "N/A"
    try:
        return choices(value).label
    except ValueError:
        return value
