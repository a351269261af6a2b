from django.contrib import admin

from .models import Commission, PayoutBatch


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "affiliate", "commission_amount", "status", "payable_at", "payout_batch")
    search_fields = ("order__order_number", "affiliate__code", "affiliate__email")
    list_filter = ("status", "tier_name")
    raw_id_fields = ("order", "affiliate", "payout_batch")


@admin.register(PayoutBatch)
class PayoutBatchAdmin(admin.ModelAdmin):
    list_display = ("id", "batch_date", "total_commissions", "total_affiliates", "commission_count", "status", "processed_at")
    list_filter = ("status",)
    readonly_fields = ("created_at", "processed_at")
