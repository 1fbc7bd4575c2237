from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class HarbourviewUserAdmin(UserAdmin):
    list_display = ("email", "display_name", "phone", "is_staff", "is_active")
    search_fields = ("email", "display_name", "phone")
    fieldsets = UserAdmin.fieldsets + (
        ("Contact", {"fields": ("display_name", "phone")}),
    )
