import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AffiliateTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50)),
                ("min_delivered_orders_30d", models.PositiveIntegerField(default=0)),
                ("rate_multiplier", models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=5)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["min_delivered_orders_30d", "id"],
            },
        ),
        migrations.CreateModel(
            name="Affiliate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "type",
                    models.CharField(
                        choices=[("individual", "Individual"), ("parlour", "Parlour")],
                        default="individual",
                        max_length=20,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("parlour_name", models.CharField(blank=True, max_length=255, null=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("whatsapp_number", models.CharField(blank=True, max_length=20, null=True)),
                ("city", models.CharField(blank=True, max_length=100, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("code", models.CharField(max_length=12, unique=True)),
                ("active", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("warning", "Warning"),
                            ("suspended", "Suspended"),
                            ("revoked", "Revoked"),
                        ],
                        default="active",
                        max_length=20,
                    ),
                ),
                ("strike_count", models.PositiveIntegerField(default=0)),
                ("commission_rate", models.DecimalField(decimal_places=4, default=Decimal("0.10"), max_digits=5)),
                (
                    "payout_method",
                    models.CharField(
                        blank=True,
                        choices=[("easypaisa", "EasyPaisa"), ("bank_transfer", "Bank transfer")],
                        default="",
                        max_length=20,
                    ),
                ),
                ("easypaisa_number", models.CharField(blank=True, max_length=20, null=True)),
                ("bank_name", models.CharField(blank=True, max_length=100, null=True)),
                ("bank_account_name", models.CharField(blank=True, max_length=255, null=True)),
                ("bank_account_number", models.CharField(blank=True, max_length=34, null=True)),
                ("bank_iban", models.CharField(blank=True, max_length=34, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("profile_updated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="affiliate",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
