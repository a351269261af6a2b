from django.contrib import admin

from .models import ActivityLog, AuditLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("user", "action", "entity_type", "ip_address", "created_at")
    search_fields = ("user__email", "action", "ip_address")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "actor", "created_at")
    search_fields = ("entity_id", "action")
    list_filter = ("action", "entity_type")
