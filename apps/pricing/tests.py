# apps/pricing/tests.py
import math
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from apps.utils.exceptions import ConfigurationGap, NotFound, ValidationFailed
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
from .print_jobs import calculate, physical_sheet_count
from .rules import OVERLAP_MESSAGE, ChargeRule, evaluate, validate_rule_set
from .services import PricingService

User = get_user_model()


def rule(from_amount, to_amount, charge):
    return ChargeRule.build(from_amount, to_amount, charge)


STANDARD_RULES = [rule(0, 499, 40), rule(500, None, 0)]
THREE_TIERS = [rule(0, 199, 50), rule(200, 499, 20), rule(500, None, 0)]


class EvaluateTests(SimpleTestCase):
    def test_free_delivery_hint(self):
        result = evaluate(STANDARD_RULES, Decimal("350"))
        self.assertEqual(result.charge, Decimal("40"))
        self.assertEqual(result.next_tier_info, "Add items worth Rs 150.00 more for FREE delivery.")
        self.assertEqual(result.next_tier_amount, Decimal("150"))
        self.assertEqual(result.next_tier_charge, Decimal("0"))

    def test_reduced_charge_hint(self):
        result = evaluate(THREE_TIERS, 100)
        self.assertEqual(result.charge, Decimal("50"))
        self.assertEqual(
            result.next_tier_info,
            "Add items worth Rs 100.00 more for a delivery charge of Rs 20.00.",
        )

    def test_top_tier_has_no_hint(self):
        result = evaluate(STANDARD_RULES, 800)
        self.assertEqual(result.charge, Decimal("0"))
        self.assertIsNone(result.next_tier_info)

    def test_boundaries_are_inclusive(self):
        self.assertEqual(evaluate(STANDARD_RULES, 0).charge, Decimal("40"))
        self.assertEqual(evaluate(STANDARD_RULES, 499).charge, Decimal("40"))
        self.assertEqual(evaluate(STANDARD_RULES, 500).charge, Decimal("0"))

    def test_empty_rules_charge_nothing(self):
        result = evaluate([], 250)
        self.assertEqual(result.charge, Decimal("0"))
        self.assertIsNone(result.next_tier_info)

    def test_unsorted_input_is_sorted_first(self):
        result = evaluate(list(reversed(THREE_TIERS)), 250)
        self.assertEqual(result.charge, Decimal("20"))
        self.assertIn("FREE delivery", result.next_tier_info)

    def test_gap_defaults_to_zero(self):
        gappy = [rule(0, 100, 40), rule(200, None, 0)]
        with self.assertLogs("apps.pricing.rules", level="WARNING"):
            result = evaluate(gappy, 150)
        self.assertEqual(result.charge, Decimal("0"))
        self.assertIsNone(result.next_tier_info)

    def test_gap_raises_in_strict_mode(self):
        gappy = [rule(0, 100, 40), rule(200, None, 0)]
        with self.assertRaises(ConfigurationGap):
            evaluate(gappy, 150, strict=True)

    def test_exactly_one_rule_matches_and_next_tier_is_cheaper(self):
        for subtotal in range(0, 800, 7):
            matching = [r for r in THREE_TIERS if r.covers(Decimal(subtotal))]
            self.assertEqual(len(matching), 1, subtotal)

            result = evaluate(THREE_TIERS, subtotal)
            self.assertEqual(result.charge, matching[0].charge)
            if result.next_tier_info:
                self.assertLess(result.next_tier_charge, result.charge)
                self.assertGreater(result.next_tier_amount, 0)


class RuleSetValidationTests(SimpleTestCase):
    def test_valid_set_comes_back_sorted(self):
        rules = validate_rule_set([rule(500, None, 0), rule(0, 499, 40)])
        self.assertEqual([r.from_amount for r in rules], [Decimal("0"), Decimal("500")])

    def test_touching_ranges_overlap(self):
        with self.assertRaisesMessage(ValidationFailed, OVERLAP_MESSAGE):
            validate_rule_set([rule(0, 500, 40), rule(500, None, 0)])

    def test_open_ended_rule_must_be_last(self):
        with self.assertRaisesMessage(ValidationFailed, OVERLAP_MESSAGE):
            validate_rule_set([rule(0, None, 40), rule(500, None, 0)])

    def test_from_must_be_below_to(self):
        with self.assertRaisesMessage(ValidationFailed, "'From' must be less than 'To'."):
            validate_rule_set([rule(100, 100, 40)])

    def test_negative_amounts_rejected(self):
        with self.assertRaises(ValidationFailed):
            validate_rule_set([rule(0, 100, -5)])


def paper(**rates):
    defaults = dict(price_bw_front=2, price_bw_both=Decimal("1.5"), price_color_front=10, price_color_both=8)
    defaults.update(rates)
    return SimpleNamespace(**defaults)


class PrintJobCalculatorTests(SimpleTestCase):
    def test_double_sided_bw_job(self):
        price = calculate(
            paper(), ColorOption.BW, FormatType.BOTH, PrintRatio.ONE_UP,
            None, None, page_count=5, quantity=2,
        )
        self.assertEqual(price.physical_sheets, 3)
        self.assertEqual(price.price_per_page, Decimal("1.5"))
        self.assertEqual(price.printing_cost, Decimal("4.5"))
        self.assertEqual(price.final_price, Decimal("9.0"))

    def test_colour_rate_selection(self):
        price = calculate(paper(), ColorOption.COLOR, FormatType.FRONT, PrintRatio.ONE_UP, None, None, 3, 1)
        self.assertEqual(price.price_per_page, Decimal("10"))
        self.assertEqual(price.final_price, Decimal("30"))

    def test_two_up_halves_the_rate(self):
        price = calculate(paper(), ColorOption.BW, FormatType.FRONT, PrintRatio.TWO_UP, None, None, 10, 1)
        self.assertEqual(price.price_per_page, Decimal("1"))
        self.assertEqual(price.final_price, Decimal("10"))

    def test_finishing_is_charged_once_per_copy(self):
        binding = SimpleNamespace(price=Decimal("10"))
        lamination = SimpleNamespace(price=Decimal("5"))
        price = calculate(paper(), ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP, binding, lamination, 4, 3)

        self.assertEqual(price.binding_cost, Decimal("10"))
        self.assertEqual(price.lamination_cost, Decimal("5"))
        self.assertEqual(price.single_copy_price, Decimal("23"))
        self.assertEqual(price.final_price, Decimal("69"))
        self.assertEqual(price.unit_price, Decimal("23"))

    def test_missing_configuration_prices_at_zero(self):
        price = calculate(None, ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP, None, None, 10, 2)
        self.assertEqual(price.final_price, Decimal("0"))
        self.assertEqual(price.binding_cost, Decimal("0"))

    def test_negative_counts_clamped(self):
        price = calculate(paper(), ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP, None, None, -4, -1)
        self.assertEqual(price.physical_sheets, 0)
        self.assertEqual(price.final_price, Decimal("0"))

    def test_final_price_law(self):
        binding = SimpleNamespace(price=Decimal("7.5"))
        for pages in range(0, 25):
            self.assertLessEqual(physical_sheet_count(pages, FormatType.BOTH), pages)
            self.assertEqual(physical_sheet_count(pages, FormatType.BOTH), math.ceil(pages / 2))
            for quantity in (1, 2, 5):
                price = calculate(paper(), ColorOption.BW, FormatType.BOTH, PrintRatio.TWO_UP, binding, None, pages, quantity)
                expected = quantity * (price.printing_cost + price.binding_cost + price.lamination_cost)
                self.assertEqual(price.final_price, expected)
                self.assertGreaterEqual(price.final_price, 0)


class PricingServiceTests(TestCase):
    def setUp(self):
        self.spiral = BindingType.objects.create(name="Spiral", price="25.00")
        self.tape = BindingType.objects.create(name="Tape", price="10.00")
        self.gloss = LaminationType.objects.create(name="Gloss", price="15.00")
        self.a4 = PaperType.objects.create(
            name="A4 75gsm",
            position=1,
            price_bw_front="2.00",
            price_bw_both="1.50",
            price_color_front="10.00",
            price_color_both="8.00",
            allowed_color_options=[ColorOption.BW],
        )
        self.a4.binding_types.add(self.spiral)
        self.bond = PaperType.objects.create(name="Bond", position=2, price_bw_front="5.00")

    def test_replace_and_read_rules(self):
        PricingService.replace_delivery_rules(RuleContext.ITEMS, [rule(500, None, 0), rule(0, 499, 40)])

        rules = PricingService.delivery_rules(RuleContext.ITEMS)
        self.assertEqual([r.charge for r in rules], [Decimal("40.00"), Decimal("0.00")])
        self.assertEqual(PricingService.delivery_rules(RuleContext.XEROX), [])

        quote = PricingService.quote_delivery(RuleContext.ITEMS, Decimal("350.00"))
        self.assertEqual(quote.charge, Decimal("40.00"))

    def test_invalid_rule_set_keeps_old_rules(self):
        PricingService.replace_delivery_rules(RuleContext.XEROX, [rule(0, None, 20)])

        with self.assertRaises(ValidationFailed):
            PricingService.replace_delivery_rules(RuleContext.XEROX, [rule(0, 300, 20), rule(200, None, 0)])

        self.assertEqual(DeliveryChargeRule.objects.filter(context=RuleContext.XEROX).count(), 1)

    def test_quote_with_unknown_options(self):
        price = PricingService.quote_print_job(
            str(self.a4.id), ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP,
            binding_type_id="not-a-uuid", lamination_type_id="none",
            page_count=10, quantity=1,
        )
        self.assertEqual(price.binding_cost, Decimal("0"))
        self.assertEqual(price.final_price, Decimal("20.00"))

    def test_selection_rejects_disallowed_colour(self):
        with self.assertRaises(ValidationFailed):
            PricingService.validate_print_selection(
                str(self.a4.id), ColorOption.COLOR, FormatType.FRONT, PrintRatio.ONE_UP
            )

    def test_selection_rejects_binding_not_offered_for_paper(self):
        with self.assertRaises(ValidationFailed):
            PricingService.validate_print_selection(
                str(self.a4.id), ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP,
                binding_type_id=str(self.tape.id),
            )

    def test_empty_allowed_lists_mean_unrestricted(self):
        result = PricingService.validate_print_selection(
            str(self.bond.id), ColorOption.COLOR, FormatType.BOTH, PrintRatio.TWO_UP,
            binding_type_id=str(self.tape.id), lamination_type_id=str(self.gloss.id),
        )
        self.assertEqual(result, self.bond)

    def test_selection_rejects_unknown_paper(self):
        with self.assertRaises(ValidationFailed):
            PricingService.validate_print_selection(
                "00000000-0000-0000-0000-000000000000", ColorOption.BW, FormatType.FRONT, PrintRatio.ONE_UP
            )

    def test_reorder_applies_all_positions(self):
        PricingService.reorder_paper_types([(str(self.a4.id), 5), (str(self.bond.id), 0)])

        self.assertEqual(list(PaperType.objects.values_list("name", flat=True)), ["Bond", "A4 75gsm"])

    def test_reorder_with_unknown_id_writes_nothing(self):
        with self.assertRaises(NotFound):
            PricingService.reorder_paper_types([
                (str(self.a4.id), 9),
                ("00000000-0000-0000-0000-000000000000", 1),
            ])

        self.a4.refresh_from_db()
        self.assertEqual(self.a4.position, 1)


class PricingAPITests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(phone="+911000000001", password="testpass123")
        self.employee = User.objects.create_user(
            phone="+911000000002", password="testpass123", roles=["employee"]
        )
        PricingService.replace_delivery_rules(RuleContext.ITEMS, [rule(0, 499, 40), rule(500, None, 0)])

    def test_delivery_quote_is_public(self):
        resp = self.client.post(
            reverse("pricing-quote-delivery"),
            {"context": "items", "subtotal": "350.00"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["charge"], "40.00")
        self.assertEqual(resp.data["next_tier_info"], "Add items worth Rs 150.00 more for FREE delivery.")

    def test_print_job_quote(self):
        a4 = PaperType.objects.create(name="A4", price_bw_front="2.00", price_bw_both="1.50")
        resp = self.client.post(
            reverse("pricing-quote-print-job"),
            {
                "paper_type": str(a4.id),
                "color_option": "bw",
                "format_type": "both",
                "print_ratio": "1:1",
                "page_count": 5,
                "quantity": 2,
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["physical_sheets"], 3)
        self.assertEqual(Decimal(resp.data["final_price"]), Decimal("9"))

    def test_customer_cannot_replace_rules(self):
        self.client.force_authenticate(self.customer)
        resp = self.client.put(
            reverse("pricing-delivery-rules", kwargs={"context": "items"}),
            {"rules": [{"from_amount": "0", "to_amount": None, "charge": "0"}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_employee_replaces_rules(self):
        self.client.force_authenticate(self.employee)
        url = reverse("pricing-delivery-rules", kwargs={"context": "xerox"})
        resp = self.client.put(
            url,
            {"rules": [
                {"from_amount": "0", "to_amount": "99.99", "charge": "20"},
                {"from_amount": "100", "to_amount": None, "charge": "0"},
            ]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.client.get(url)
        self.assertEqual(len(resp.data["rules"]), 2)
        self.assertIsNone(resp.data["rules"][1]["to_amount"])

    def test_overlapping_rules_rejected(self):
        self.client.force_authenticate(self.employee)
        resp = self.client.put(
            reverse("pricing-delivery-rules", kwargs={"context": "items"}),
            {"rules": [
                {"from_amount": "0", "to_amount": "500", "charge": "40"},
                {"from_amount": "400", "to_amount": None, "charge": "0"},
            ]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "validation_failed")

    def test_reorder_unknown_paper_is_404(self):
        self.client.force_authenticate(self.employee)
        resp = self.client.post(
            reverse("pricing-paper-types-reorder"),
            {"items": [{"id": "00000000-0000-0000-0000-000000000000", "position": 1}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
