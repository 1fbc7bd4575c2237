from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor_label", "action", "table_name", "record_id")
    list_filter = ("action", "table_name")
    search_fields = ("actor_label", "record_id")
    readonly_fields = [field.name for field in AuditLog._meta.fields]
