import uuid
from decimal import Decimal

from django.db import models


class Affiliate(models.Model):
    TYPE_CHOICES = [
        ("individual", "Individual"),
        ("parlour", "Parlour"),
    ]

    STATUS_CHOICES = [
        ("active", "Active"),
        ("warning", "Warning"),
        ("suspended", "Suspended"),
        ("revoked", "Revoked"),
    ]

    PAYOUT_METHOD_CHOICES = [
        ("easypaisa", "EasyPaisa"),
        ("bank_transfer", "Bank transfer"),
    ]

    # Statuses that stop a referral code from attributing new orders.
    BLOCKED_STATUSES = ("suspended", "revoked")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        "authentication.User",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="affiliate",
    )
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="individual")
    name = models.CharField(max_length=255)
    parlour_name = models.CharField(max_length=255, blank=True, null=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    whatsapp_number = models.CharField(max_length=20, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    code = models.CharField(max_length=12, unique=True)
    active = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    strike_count = models.PositiveIntegerField(default=0)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal("0.10"))
    payout_method = models.CharField(max_length=20, choices=PAYOUT_METHOD_CHOICES, blank=True, default="")
    easypaisa_number = models.CharField(max_length=20, blank=True, null=True)
    bank_name = models.CharField(max_length=100, blank=True, null=True)
    bank_account_name = models.CharField(max_length=255, blank=True, null=True)
    bank_account_number = models.CharField(max_length=34, blank=True, null=True)
    bank_iban = models.CharField(max_length=34, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    profile_updated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        self.email = (self.email or "").strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_attribution_eligible(self) -> bool:
        return bool(self.active) and self.status not in self.BLOCKED_STATUSES


class AffiliateTier(models.Model):
    """
    Commission multiplier unlocked by an affiliate's delivered order volume
    over the trailing window (``AFFILIATE_TIER_WINDOW_DAYS``).
    """

    name = models.CharField(max_length=50)
    min_delivered_orders_30d = models.PositiveIntegerField(default=0)
    rate_multiplier = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("1.00"))
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["min_delivered_orders_30d", "id"]

    def __str__(self) -> str:
        return f"{self.name} (>= {self.min_delivered_orders_30d})"
