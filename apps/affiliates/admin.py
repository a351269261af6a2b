from django.contrib import admin

from .models import Affiliate, AffiliateTier


@admin.register(Affiliate)
class AffiliateAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "city", "active", "status", "strike_count", "commission_rate", "payout_method")
    search_fields = ("code", "name", "email", "phone")
    list_filter = ("active", "status", "type", "payout_method")


@admin.register(AffiliateTier)
class AffiliateTierAdmin(admin.ModelAdmin):
    list_display = ("name", "min_delivered_orders_30d", "rate_multiplier", "active")
    list_filter = ("active",)
