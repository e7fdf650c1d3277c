# apps/utils/tests.py
import json
import logging
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from apps.pricing.models import RuleContext
from apps.pricing.rules import ChargeRule
from apps.pricing.services import PricingService
from .exceptions import (
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    ValidationFailed,
    custom_exception_handler,
)
from .logging import JSONFormatter
from .utils import dict_clean, money
from .validators import validate_phone


class ValidatorTests(SimpleTestCase):
    def test_phone_validator(self):
        self.assertEqual(validate_phone("+919876543210"), "+919876543210")
        self.assertEqual(validate_phone("9876543210"), "9876543210")
        with self.assertRaises(ValidationError):
            validate_phone("123")  # Invalid
        with self.assertRaises(ValidationError):
            validate_phone("98765abc10")


class MoneyHelperTests(SimpleTestCase):
    def test_money_rounds_half_up_to_paise(self):
        self.assertEqual(money("10.005"), Decimal("10.01"))
        self.assertEqual(money(3), Decimal("3.00"))
        self.assertEqual(money(None), Decimal("0.00"))

    def test_dict_clean_drops_empty_values(self):
        self.assertEqual(
            dict_clean({"a": 1, "b": None, "c": "", "d": [], "e": 0}),
            {"a": 1, "e": 0},
        )


class ExceptionHandlerTests(SimpleTestCase):
    def test_business_errors_map_to_status_and_code(self):
        cases = [
            (NotFound("Order not found."), 404, "not_found"),
            (InvalidTransition("nope"), 409, "invalid_transition"),
            (PreconditionFailed("too late"), 409, "precondition_failed"),
            (ValidationFailed("bad"), 400, "validation_failed"),
        ]
        for exc, expected_status, expected_code in cases:
            response = custom_exception_handler(exc, {})
            self.assertEqual(response.status_code, expected_status)
            self.assertEqual(response.data, {"error": exc.message, "code": expected_code})

    def test_unknown_exception_becomes_500(self):
        with self.assertLogs("apps.utils.exceptions", level="ERROR"):
            response = custom_exception_handler(RuntimeError("boom"), {})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["code"], "server_error")


class JSONFormatterTests(SimpleTestCase):
    def test_redacts_and_carries_context(self):
        record = logging.LogRecord("apps.orders", logging.INFO, __file__, 1, {
            "mobile": "+919876543210",
            "lines": [{"password": "x", "qty": 2}],
        }, None, None)
        record.order_id = "abc"

        payload = json.loads(JSONFormatter().format(record))
        self.assertEqual(payload["order_id"], "abc")
        self.assertIn("***REDACTED***", payload["msg"])
        self.assertNotIn("+919876543210", payload["msg"])
        self.assertIn("'qty': 2", payload["msg"])


class UtilityEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_health_check(self):
        response = self.client.get("/api/v1/utils/health/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["components"]["db"], "ok")

    def test_global_config_lists_delivery_rules(self):
        PricingService.replace_delivery_rules(RuleContext.ITEMS, [ChargeRule.build(0, None, 25)])

        response = self.client.get("/api/v1/utils/config/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["return_window_days"], 3)
        self.assertEqual(
            response.data["delivery_rules"]["items"],
            [{"from_amount": "0.00", "to_amount": None, "charge": "25.00"}],
        )
        self.assertEqual(response.data["delivery_rules"]["xerox"], [])
