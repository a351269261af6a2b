from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("full_name", "phone_number", "role")}),
        ("Access", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )
    readonly_fields = ("created_at", "updated_at", "last_login")
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "full_name", "role", "password1", "password2")}),
    )
    list_display = ("email", "full_name", "role", "affiliate_code", "is_active", "created_at")
    list_filter = ("role", "is_active", "is_staff")
    list_select_related = ("affiliate",)
    search_fields = ("email", "full_name", "affiliate__code")
    ordering = ("-created_at",)

    @admin.display(description="Affiliate code", ordering="affiliate__code")
    def affiliate_code(self, obj):
        affiliate = getattr(obj, "affiliate", None)
        return affiliate.code if affiliate else "-"
