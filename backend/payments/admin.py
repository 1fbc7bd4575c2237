from django.contrib import admin

from .models import Payment, PaymentLog


class PaymentLogInline(admin.TabularInline):
    model = PaymentLog
    extra = 0
    can_delete = False
    fields = ("created_at", "event_type", "status")
    readonly_fields = fields


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "booking", "amount_cents", "status", "processed_at", "created_at")
    list_filter = ("status",)
    search_fields = ("transaction_id", "gateway_transaction_id", "booking__booking_number")
    readonly_fields = [field.name for field in Payment._meta.fields]
    inlines = [PaymentLogInline]


@admin.register(PaymentLog)
class PaymentLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "event_type", "transaction_id", "status", "payment", "booking")
    list_filter = ("event_type",)
    search_fields = ("transaction_id",)
    readonly_fields = [field.name for field in PaymentLog._meta.fields]
