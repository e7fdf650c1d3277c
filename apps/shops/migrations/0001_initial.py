import uuid

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Shop",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("address", models.TextField(blank=True)),
                ("mobile_numbers", models.JSONField(blank=True, default=list)),
                ("services", models.JSONField(blank=True, default=list, help_text="Subset of ShopService values")),
                ("notes", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "employees",
                    models.ManyToManyField(blank=True, related_name="employed_at_shops", to=settings.AUTH_USER_MODEL),
                ),
                (
                    "owners",
                    models.ManyToManyField(blank=True, related_name="owned_shops", to=settings.AUTH_USER_MODEL),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
