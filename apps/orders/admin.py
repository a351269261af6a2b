from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "affiliate", "delivery_status", "total_amount", "affiliate_commission_amount", "created_at")
    search_fields = ("order_number", "customer_name", "phone", "affiliate__code")
    list_filter = ("delivery_status",)
    readonly_fields = ("affiliate", "affiliate_ref_code", "affiliate_commission_amount")
