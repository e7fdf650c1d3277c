import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.orders.models.order

STATUS_CHOICES = [
    ("Pending Confirmation", "Pending Confirmation"),
    ("Processing", "Processing"),
    ("Packed", "Packed"),
    ("Shipped", "Shipped"),
    ("Out for Delivery", "Out for Delivery"),
    ("Pending Delivery Confirmation", "Pending Delivery Confirmation"),
    ("Delivered", "Delivered"),
    ("Cancelled", "Cancelled"),
    ("Rejected", "Rejected"),
    ("Return Requested", "Return Requested"),
    ("Return Approved", "Return Approved"),
    ("Out for Pickup", "Out for Pickup"),
    ("Picked Up", "Picked Up"),
    ("Pending Return Confirmation", "Pending Return Confirmation"),
    ("Return Rejected", "Return Rejected"),
    ("Return Completed", "Return Completed"),
    ("Replacement Confirmed", "Replacement Confirmed"),
    ("Pending Replacement Confirmation", "Pending Replacement Confirmation"),
    ("Replacement Completed", "Replacement Completed"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("shops", "0001_initial"),
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("group_id", models.UUIDField(db_index=True, editable=False)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("stationary", "Stationary"),
                            ("books", "Books"),
                            ("electronics", "Electronics"),
                            ("xerox", "Xerox"),
                        ],
                        max_length=20,
                    ),
                ),
                ("product_name", models.CharField(max_length=255)),
                ("product_image", models.URLField(blank=True, max_length=1000, null=True)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "price",
                    models.DecimalField(decimal_places=2, help_text="Per unit, frozen at checkout", max_digits=10),
                ),
                ("delivery_charge", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("is_delivery_fee_paid", models.BooleanField(default=False)),
                ("shipping_address", models.JSONField(default=dict)),
                ("mobile", models.CharField(max_length=15)),
                ("alt_mobiles", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="Pending Confirmation",
                        max_length=40,
                    ),
                ),
                ("xerox_config", models.JSONField(blank=True, null=True)),
                ("tracking", models.JSONField(default=apps.orders.models.order.default_tracking)),
                ("return_reason", models.TextField(blank=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("rejection_reason", models.TextField(blank=True)),
                (
                    "return_type",
                    models.CharField(
                        blank=True,
                        choices=[("refund", "Refund"), ("replacement", "Replacement")],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to="catalog.product",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="shops.shop",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
                    models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
                ],
            },
        ),
    ]
