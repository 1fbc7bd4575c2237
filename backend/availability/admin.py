from django.contrib import admin

from .models import Room, RoomBlock


class RoomBlockInline(admin.TabularInline):
    model = RoomBlock
    extra = 0
    fields = ("start_date", "end_date", "reason", "notes")


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("room_number", "name", "room_type", "base_price_cents", "max_guests", "is_active", "is_available")
    list_filter = ("room_type", "is_active", "is_available")
    search_fields = ("room_number", "name")
    inlines = [RoomBlockInline]


@admin.register(RoomBlock)
class RoomBlockAdmin(admin.ModelAdmin):
    list_display = ("room", "start_date", "end_date", "reason", "created_by")
    list_filter = ("reason",)
    search_fields = ("room__room_number", "reason")
