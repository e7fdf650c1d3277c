# seed_master.py
import os
import django
from decimal import Decimal
from django.db import transaction

# 1. Django Setup (Zaroori hai kyunki ye root mein hai)
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

# Models Import
from django.contrib.auth import get_user_model
from apps.catalog.models import Product, ProductCategory
from apps.pricing.models import BindingType, LaminationType, PaperType, RuleContext
from apps.pricing.rules import ChargeRule
from apps.pricing.services import PricingService
from apps.shops.models import Shop, ShopService

User = get_user_model()


def run_seed():
    print("🚀 Starting MASTER Data Seeding...")

    with transaction.atomic():
        # ==========================================
        # 1. USERS & SHOP
        # ==========================================
        print("🏪 Setting up shop & staff...")

        admin = User.objects.filter(phone="+910000000000").first()
        if admin is None:
            admin = User.objects.create_superuser(phone="+910000000000", password="admin12345")

        seller = User.objects.filter(phone="+919000000001").first()
        if seller is None:
            seller = User.objects.create_user(phone="+919000000001", password="seller12345", roles=["seller"])

        shop, _ = Shop.objects.get_or_create(
            name="PrintKart Campus Store",
            defaults={
                "address": "Ground floor, Library Block",
                "mobile_numbers": ["+919000000001", "+919000000002"],
                "services": list(ShopService.values),
                "is_active": True,
            },
        )
        shop.owners.add(seller)

        # ==========================================
        # 2. DELIVERY RULES
        # ==========================================
        print("🚚 Setting up delivery rules...")
        PricingService.replace_delivery_rules(RuleContext.ITEMS, [
            ChargeRule.build(0, "199.99", 40),
            ChargeRule.build(200, "499.99", 20),
            ChargeRule.build(500, None, 0),
        ])
        PricingService.replace_delivery_rules(RuleContext.XEROX, [
            ChargeRule.build(0, "99.99", 15),
            ChargeRule.build(100, None, 0),
        ])

        # ==========================================
        # 3. XEROX CATALOG
        # ==========================================
        print("🖨️  Setting up paper & finishing options...")
        spiral, _ = BindingType.objects.get_or_create(name="Spiral Binding", defaults={"price": Decimal("30.00")})
        soft, _ = BindingType.objects.get_or_create(name="Soft Binding", defaults={"price": Decimal("50.00")})
        gloss, _ = LaminationType.objects.get_or_create(name="Gloss Lamination", defaults={"price": Decimal("20.00")})

        papers = [
            ("A4 75 GSM", Decimal("2.00"), Decimal("1.50"), Decimal("10.00"), Decimal("8.00")),
            ("A4 100 GSM Bond", Decimal("4.00"), Decimal("3.00"), Decimal("15.00"), Decimal("12.00")),
            ("A3 75 GSM", Decimal("5.00"), Decimal("4.00"), Decimal("20.00"), Decimal("16.00")),
        ]
        for position, (name, bw_front, bw_both, color_front, color_both) in enumerate(papers):
            paper, _ = PaperType.objects.update_or_create(
                name=name,
                defaults={
                    "position": position,
                    "price_bw_front": bw_front,
                    "price_bw_both": bw_both,
                    "price_color_front": color_front,
                    "price_color_both": color_both,
                },
            )
            paper.binding_types.set([spiral, soft])
            paper.lamination_types.set([gloss])

        # ==========================================
        # 4. PRODUCTS
        # ==========================================
        print("📦 Setting up products...")
        products = [
            ("Classmate Notebook 172 pages", ProductCategory.STATIONARY, "65.00", "59.00"),
            ("Reynolds Trimax Pen (Pack of 2)", ProductCategory.STATIONARY, "120.00", None),
            ("Geometry Box", ProductCategory.STATIONARY, "150.00", "135.00"),
            ("Concepts of Physics Vol 1", ProductCategory.BOOKS, "545.00", "499.00"),
            ("Engineering Mathematics", ProductCategory.BOOKS, "720.00", None),
            ("Scientific Calculator fx-991", ProductCategory.ELECTRONICS, "1250.00", "1099.00"),
            ("USB-C Cable 1m", ProductCategory.ELECTRONICS, "299.00", None),
        ]
        for name, category, price, discount in products:
            Product.objects.update_or_create(
                name=name,
                defaults={
                    "category": category,
                    "price": Decimal(price),
                    "discount_price": Decimal(discount) if discount else None,
                    "is_active": True,
                },
            )

    print("✅ Seeding complete.")


if __name__ == "__main__":
    run_seed()
