from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied, ValidationError

from .models import MobilePayment, PaymentStatus
from .services import set_payment_status


@admin.register(MobilePayment)
class MobilePaymentAdmin(admin.ModelAdmin):
    list_display = ("user", "method", "amount", "currency", "phone_number", "ussd_code", "status", "created_at")
    list_filter = ("status", "method")
    search_fields = ("user__username", "phone_number", "ussd_code")
    raw_id_fields = ("user", "booking", "enrollment")
    readonly_fields = ("ussd_code", "status", "created_at", "completed_at")
    ordering = ("-created_at",)
    actions = ["mark_completed", "mark_failed"]

    def has_add_permission(self, request):
        return False

    def _set_status(self, request, queryset, status):
        for payment in queryset:
            try:
                set_payment_status(payment, status, request.user)
            except (ValidationError, PermissionDenied) as exc:
                self.message_user(request, f"#{payment.pk}: {exc}", level=messages.ERROR)

    @admin.action(description="Mark selected payments as completed")
    def mark_completed(self, request, queryset):
        self._set_status(request, queryset, PaymentStatus.COMPLETED)

    @admin.action(description="Mark selected payments as failed")
    def mark_failed(self, request, queryset):
        self._set_status(request, queryset, PaymentStatus.FAILED)
