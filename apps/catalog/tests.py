# apps/catalog/tests.py
from decimal import Decimal

from django.test import TestCase

from .models import Product, ProductCategory


class ProductModelTests(TestCase):
    def test_effective_price_prefers_discount(self):
        product = Product.objects.create(
            name="Geometry Box",
            category=ProductCategory.STATIONARY,
            price=Decimal("150.00"),
            discount_price=Decimal("135.00"),
        )
        self.assertEqual(product.effective_price, Decimal("135.00"))

        product.discount_price = None
        self.assertEqual(product.effective_price, Decimal("150.00"))

    def test_zero_discount_is_still_a_discount(self):
        product = Product(name="Free Bookmark", category=ProductCategory.BOOKS, price=Decimal("10.00"),
                          discount_price=Decimal("0.00"))
        self.assertEqual(product.effective_price, Decimal("0.00"))
