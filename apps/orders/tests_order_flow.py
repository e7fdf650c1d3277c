import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product, ProductCategory
from apps.pricing.models import BindingType, PaperType, RuleContext
from apps.pricing.rules import ChargeRule
from apps.pricing.services import PricingService
from apps.shops.models import Shop
from apps.utils.exceptions import NotFound, ValidationFailed
from .models import Order, OrderStatus
from .services import CheckoutService, OrderGroupService, _split_evenly

User = get_user_model()


class CheckoutFixtureMixin:
    """
    Two shops, a few products, a paper type and both delivery rule sets.

    stationary: notebook 60 x2 + pen (100 after discount) -> 220, charge 40
    books:      physics book 450 -> charge 40
    xerox:      10 pages B/W front + spiral 30 = 50 per copy, x2 -> 100, charge 0
    """

    def build_catalog(self):
        self.customer = User.objects.create_user(phone="+919876543210", password="pass12345")
        self.store = Shop.objects.create(
            name="Campus Store",
            mobile_numbers=["+919000000001"],
            services=["stationary", "books"],
        )
        self.print_shop = Shop.objects.create(
            name="Print Corner",
            mobile_numbers=["+919000000009"],
            services=["xerox"],
        )

        self.notebook = Product.objects.create(
            name="Notebook", category=ProductCategory.STATIONARY, price=Decimal("60.00")
        )
        self.pen = Product.objects.create(
            name="Pen Pack",
            category=ProductCategory.STATIONARY,
            price=Decimal("120.00"),
            discount_price=Decimal("100.00"),
        )
        self.book = Product.objects.create(
            name="Physics Vol 1", category=ProductCategory.BOOKS, price=Decimal("450.00")
        )

        self.paper = PaperType.objects.create(
            name="A4 75 GSM", price_bw_front=Decimal("2.00"), price_bw_both=Decimal("1.50")
        )
        self.spiral = BindingType.objects.create(name="Spiral", price=Decimal("30.00"))

        PricingService.replace_delivery_rules(
            RuleContext.ITEMS, [ChargeRule.build(0, 499, 40), ChargeRule.build(500, None, 0)]
        )
        PricingService.replace_delivery_rules(
            RuleContext.XEROX, [ChargeRule.build(0, 99, 15), ChargeRule.build(100, None, 0)]
        )

        self.sellers = {
            "stationary": str(self.store.id),
            "books": str(self.store.id),
            "xerox": str(self.print_shop.id),
        }

    def xerox_line(self, **overrides):
        line = {
            "category": "xerox",
            "file_name": "unit-3-notes.pdf",
            "file_url": "https://files.example.com/unit-3-notes.pdf",
            "page_count": 10,
            "paper_type": str(self.paper.id),
            "color_option": "bw",
            "format_type": "front",
            "print_ratio": "1:1",
            "binding_type": str(self.spiral.id),
            "lamination_type": "none",
            "quantity": 2,
        }
        line.update(overrides)
        return line

    def cart(self):
        return [
            {"product_id": str(self.notebook.id), "quantity": 2},
            {"product_id": str(self.pen.id), "quantity": 1},
            {"product_id": str(self.book.id), "quantity": 1},
            self.xerox_line(),
        ]

    def place(self, lines=None, sellers=None):
        return CheckoutService.place_order(
            user=self.customer,
            lines=self.cart() if lines is None else lines,
            sellers=self.sellers if sellers is None else sellers,
            shipping_address={"line1": "Hostel B, Room 12", "city": "Pune"},
            mobile="+919876543210",
        )


class SplitTests(SimpleTestCase):
    def test_remainder_goes_to_last_line(self):
        self.assertEqual(
            _split_evenly(Decimal("40"), 3),
            [Decimal("13.33"), Decimal("13.33"), Decimal("13.34")],
        )
        self.assertEqual(_split_evenly(Decimal("40"), 2), [Decimal("20.00"), Decimal("20.00")])
        self.assertEqual(_split_evenly(Decimal("0"), 2), [Decimal("0.00"), Decimal("0.00")])
        self.assertEqual(_split_evenly(Decimal("10"), 0), [])

    def test_small_total_over_many_lines_never_goes_negative(self):
        shares = _split_evenly(Decimal("0.10"), 15)
        self.assertEqual(len(shares), 15)
        self.assertTrue(all(share >= 0 for share in shares))
        self.assertEqual(sum(shares), Decimal("0.10"))
        self.assertEqual(shares[:14], [Decimal("0.00")] * 14)
        self.assertEqual(shares[-1], Decimal("0.10"))

        shares = _split_evenly(Decimal("0.05"), 3)
        self.assertEqual(shares, [Decimal("0.01"), Decimal("0.01"), Decimal("0.03")])


class CheckoutServiceTests(CheckoutFixtureMixin, TestCase):
    def setUp(self):
        self.build_catalog()

    def test_lines_are_priced_and_grouped(self):
        orders = self.place()
        self.assertEqual(len(orders), 4)
        self.assertEqual(len({o.group_id for o in orders}), 1)

        by_name = {o.product_name: o for o in Order.objects.all()}
        self.assertEqual(by_name["Notebook"].price, Decimal("60.00"))
        self.assertEqual(by_name["Pen Pack"].price, Decimal("100.00"))
        self.assertEqual(by_name["Notebook"].delivery_charge, Decimal("20.00"))
        self.assertEqual(by_name["Pen Pack"].delivery_charge, Decimal("20.00"))
        self.assertEqual(by_name["Physics Vol 1"].delivery_charge, Decimal("40.00"))

        xerox = by_name["unit-3-notes.pdf"]
        self.assertEqual(xerox.seller, self.print_shop)
        self.assertEqual(xerox.price, Decimal("50.00"))
        self.assertEqual(xerox.quantity, 2)
        self.assertEqual(xerox.delivery_charge, Decimal("0.00"))
        self.assertEqual(xerox.product_image, "https://files.example.com/unit-3-notes.pdf")
        self.assertEqual(xerox.xerox_config["paper_type_name"], "A4 75 GSM")
        self.assertEqual(xerox.xerox_config["binding_type_name"], "Spiral")
        self.assertEqual(xerox.xerox_config["lamination_type_name"], "N/A")
        self.assertEqual(xerox.xerox_config["final_price"], "100.00")
        self.assertNotIn("instructions", xerox.xerox_config)

        for order in orders:
            self.assertEqual(order.status, OrderStatus.PENDING_CONFIRMATION)
            self.assertIsNotNone(order.tracking["ordered"])

    def test_price_is_frozen(self):
        self.place()
        self.notebook.price = Decimal("999.00")
        self.notebook.save()
        self.assertEqual(Order.objects.get(product_name="Notebook").price, Decimal("60.00"))

    def test_empty_cart(self):
        with self.assertRaisesMessage(ValidationFailed, "Your cart is empty."):
            self.place(lines=[])

    def test_inactive_product_creates_nothing(self):
        self.book.is_active = False
        self.book.save()
        with self.assertRaises(ValidationFailed):
            self.place()
        self.assertFalse(Order.objects.exists())

    def test_category_without_shop(self):
        sellers = dict(self.sellers)
        del sellers["books"]
        with self.assertRaisesMessage(ValidationFailed, "No shop is available to fulfil books items."):
            self.place(sellers=sellers)

    def test_shop_must_offer_category(self):
        sellers = dict(self.sellers, xerox=str(self.store.id))
        with self.assertRaises(ValidationFailed):
            self.place(sellers=sellers)

    def test_disallowed_print_option(self):
        self.paper.allowed_color_options = ["bw"]
        self.paper.save()
        with self.assertRaises(ValidationFailed):
            self.place(lines=[self.xerox_line(color_option="color")])

    def test_small_xerox_job_pays_xerox_delivery(self):
        orders = self.place(lines=[self.xerox_line(binding_type="none", quantity=1)])
        self.assertEqual(orders[0].price, Decimal("20.00"))
        self.assertEqual(orders[0].delivery_charge, Decimal("15.00"))

    def test_xerox_snapshot_matches_line_total(self):
        # 2-up halves 0.75 to 0.375 per page, which is not a whole paise amount
        cheap = PaperType.objects.create(name="Draft 60 GSM", price_bw_front=Decimal("0.75"))
        orders = self.place(lines=[self.xerox_line(
            paper_type=str(cheap.id),
            print_ratio="1:2",
            page_count=1,
            binding_type="none",
            quantity=3,
        )])

        order = Order.objects.get(pk=orders[0].pk)
        self.assertEqual(order.price, Decimal("0.38"))
        self.assertEqual(order.line_total, Decimal("1.14"))
        self.assertEqual(order.xerox_config["final_price"], str(order.line_total))

        summary = OrderGroupService.group_summary(order.group_id)
        self.assertEqual(summary.subtotal, Decimal(order.xerox_config["final_price"]))

    def test_attach_document_only_for_xerox(self):
        orders = self.place()
        notebook = next(o for o in orders if o.product_name == "Notebook")
        xerox = next(o for o in orders if o.is_xerox)

        with self.assertRaises(ValidationFailed):
            CheckoutService.attach_document(notebook.id, "https://files.example.com/x.pdf")

        updated = CheckoutService.attach_document(
            xerox.id, "https://files.example.com/v2.pdf", user=self.customer
        )
        self.assertEqual(updated.product_image, "https://files.example.com/v2.pdf")

        stranger = User.objects.create_user(phone="+919876543299", password="pass12345")
        with self.assertRaises(NotFound):
            CheckoutService.attach_document(xerox.id, "https://files.example.com/v3.pdf", user=stranger)


class OrderGroupServiceTests(CheckoutFixtureMixin, TestCase):
    def setUp(self):
        self.build_catalog()
        self.orders = self.place()
        self.group_id = self.orders[0].group_id

    def test_summary_totals(self):
        summary = OrderGroupService.group_summary(self.group_id)
        self.assertEqual(summary.subtotal, Decimal("770.00"))
        self.assertEqual(summary.delivery_total, Decimal("80.00"))
        self.assertEqual(summary.grand_total, Decimal("850.00"))
        self.assertFalse(summary.is_delivery_fee_paid)

        sellers = {s.seller_id: s for s in summary.sellers}
        store = sellers[str(self.store.id)]
        self.assertEqual(len(store.orders), 3)
        self.assertEqual(store.subtotal, Decimal("670.00"))
        self.assertEqual(store.delivery_charge, Decimal("80.00"))
        self.assertEqual(store.total, Decimal("750.00"))
        self.assertEqual(sellers[str(self.print_shop.id)].seller_mobile_numbers, ["+919000000009"])

    def test_seller_only_sees_own_lines(self):
        summaries = OrderGroupService.groups_for_seller(self.print_shop)
        self.assertEqual(len(summaries), 1)
        self.assertEqual(len(summaries[0].orders), 1)
        self.assertEqual(summaries[0].subtotal, Decimal("100.00"))

    def test_history_newest_first(self):
        second = self.place(lines=[{"product_id": str(self.notebook.id), "quantity": 1}])
        summaries = OrderGroupService.groups_for_user(self.customer)
        self.assertEqual([s.group_id for s in summaries], [str(second[0].group_id), str(self.group_id)])

    def test_settle_is_idempotent(self):
        self.assertEqual(OrderGroupService.settle_delivery_fee(self.group_id), 4)
        self.assertEqual(OrderGroupService.settle_delivery_fee(self.group_id), 4)
        self.assertTrue(all(Order.objects.filter(group_id=self.group_id).values_list("is_delivery_fee_paid", flat=True)))
        self.assertTrue(OrderGroupService.group_summary(self.group_id).is_delivery_fee_paid)

    def test_settle_unknown_group(self):
        with self.assertRaisesMessage(NotFound, "No orders found for this group."):
            OrderGroupService.settle_delivery_fee(uuid.uuid4())

    def test_summary_scoped_to_user(self):
        stranger = User.objects.create_user(phone="+919876543299", password="pass12345")
        with self.assertRaises(NotFound):
            OrderGroupService.group_summary(self.group_id, user=stranger)


class OrderAPITests(CheckoutFixtureMixin, APITestCase):
    def setUp(self):
        cache.clear()
        self.build_catalog()
        self.staff = User.objects.create_user(phone="+919000000001", password="pass12345", roles=["employee"])
        self.store.employees.add(self.staff)
        self.outsider = User.objects.create_user(phone="+919000000055", password="pass12345", roles=["seller"])
        self.admin = User.objects.create_superuser(phone="+910000000000", password="pass12345")

    def checkout(self, key=None, lines=None):
        payload = {
            "lines": self.cart() if lines is None else lines,
            "sellers": self.sellers,
            "shipping_address": {"line1": "Hostel B, Room 12", "city": "Pune"},
            "mobile": "+919876543210",
        }
        headers = {"HTTP_X_IDEMPOTENCY_KEY": key} if key else {}
        return self.client.post(reverse("checkout"), payload, format="json", **headers)

    def test_checkout_requires_idempotency_key(self):
        self.client.force_authenticate(user=self.customer)
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_checkout_and_duplicate(self):
        self.client.force_authenticate(user=self.customer)
        key = str(uuid.uuid4())

        response = self.checkout(key)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data["data"]
        self.assertEqual(data["grand_total"], "850.00")
        self.assertEqual(data["delivery_total"], "80.00")
        self.assertEqual(len(data["sellers"]), 2)

        response = self.checkout(key)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "duplicate_request")
        self.assertEqual(Order.objects.count(), 4)

    def test_failed_checkout_releases_key(self):
        self.client.force_authenticate(user=self.customer)
        key = str(uuid.uuid4())

        response = self.checkout(key, lines=[self.xerox_line(paper_type=str(uuid.uuid4()))])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_failed")

        response = self.checkout(key)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_customer_cancel_and_history(self):
        self.client.force_authenticate(user=self.customer)
        self.checkout(str(uuid.uuid4()))
        order = Order.objects.get(product_name="Notebook")

        response = self.client.post(reverse("order-cancel", args=[order.id]), {"reason": "changed mind"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], OrderStatus.CANCELLED)

        response = self.client.get(reverse("order-group-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get(reverse("order-group-detail", args=[order.group_id]))
        self.assertEqual(response.data["grand_total"], "850.00")

    def test_customers_cannot_touch_other_orders(self):
        orders = self.place()
        stranger = User.objects.create_user(phone="+919876543299", password="pass12345")
        self.client.force_authenticate(user=stranger)

        response = self.client.post(reverse("order-cancel", args=[orders[0].id]), {"reason": "x"})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_seller_accepts_then_customer_cannot_cancel(self):
        orders = self.place()
        notebook = next(o for o in orders if o.product_name == "Notebook")

        self.client.force_authenticate(user=self.staff)
        response = self.client.post(reverse("seller-order-accept", args=[notebook.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], OrderStatus.PROCESSING)

        response = self.client.post(
            reverse("seller-order-update-status", args=[notebook.id]),
            {"status": OrderStatus.SHIPPED},
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "invalid_transition")

        self.client.force_authenticate(user=self.customer)
        response = self.client.post(reverse("order-cancel", args=[notebook.id]), {"reason": "too slow"})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "precondition_failed")

    def test_outside_seller_cannot_see_lines(self):
        orders = self.place()
        self.client.force_authenticate(user=self.outsider)
        response = self.client.post(reverse("seller-order-accept", args=[orders[0].id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_seller_group_list(self):
        self.place()
        self.client.force_authenticate(user=self.staff)

        response = self.client.get(reverse("seller-group-list"), {"shop": str(self.store.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["subtotal"], "670.00")

        response = self.client.get(reverse("seller-group-list"), {"shop": str(self.print_shop.id)})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_settle_delivery_fee_permissions(self):
        group_id = self.place()[0].group_id
        url = reverse("order-group-settle", args=[group_id])

        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.post(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["orders"], 4)

        response = self.client.post(reverse("order-group-settle", args=[uuid.uuid4()]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
