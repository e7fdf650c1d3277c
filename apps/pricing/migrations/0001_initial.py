import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BindingType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=100)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
            ],
            options={
                "ordering": ["name"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="LaminationType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=100)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
            ],
            options={
                "ordering": ["name"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="DeliveryChargeRule",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "context",
                    models.CharField(
                        choices=[("items", "Stationary / Books / Electronics"), ("xerox", "Xerox")],
                        db_index=True,
                        max_length=10,
                    ),
                ),
                ("from_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("to_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("charge", models.DecimalField(decimal_places=2, max_digits=10)),
            ],
            options={
                "ordering": ["context", "from_amount"],
            },
        ),
        migrations.CreateModel(
            name="PaperType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=100)),
                ("position", models.PositiveIntegerField(default=0)),
                ("price_bw_front", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("price_bw_both", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("price_color_front", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("price_color_both", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("allowed_color_options", models.JSONField(blank=True, default=list)),
                ("allowed_format_types", models.JSONField(blank=True, default=list)),
                ("allowed_print_ratios", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "binding_types",
                    models.ManyToManyField(blank=True, related_name="paper_types", to="pricing.bindingtype"),
                ),
                (
                    "lamination_types",
                    models.ManyToManyField(blank=True, related_name="paper_types", to="pricing.laminationtype"),
                ),
            ],
            options={
                "ordering": ["position", "name"],
            },
        ),
    ]
