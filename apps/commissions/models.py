import uuid

from django.db import models


class PayoutBatch(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("processing", "Processing"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_date = models.DateField()
    period_start = models.DateField(blank=True, null=True)
    period_end = models.DateField(blank=True, null=True)
    total_commissions = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_affiliates = models.PositiveIntegerField(default=0)
    commission_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        "authentication.User",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_payout_batches",
    )
    processed_by = models.ForeignKey(
        "authentication.User",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="processed_payout_batches",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Batch {self.batch_date} ({self.status})"

    @property
    def is_paid(self) -> bool:
        return self.status == "completed"


class Commission(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("payable", "Payable"),
        ("paid", "Paid"),
        ("void", "Void"),
    ]

    TERMINAL_STATUSES = ("paid", "void")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    affiliate = models.ForeignKey(
        "affiliates.Affiliate",
        on_delete=models.PROTECT,
        related_name="commissions",
    )
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="commission",
    )
    base_commission = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=7, decimal_places=4)
    tier_name = models.CharField(max_length=50, blank=True, null=True)
    tier_multiplier = models.DecimalField(max_digits=5, decimal_places=2, default=1)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    payable_at = models.DateTimeField(blank=True, null=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    voided_at = models.DateTimeField(blank=True, null=True)
    void_reason = models.CharField(max_length=255, blank=True, null=True)
    payout_batch = models.ForeignKey(
        PayoutBatch,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="commissions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "payout_batch"], name="commission_status_batch_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.commission_amount} for order {self.order_id} ({self.status})"
