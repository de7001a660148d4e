from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied, ValidationError

from apps.common.exceptions import StaleRecordError

from .models import Booking, BookingStatus, BookingStatusLog
from .services import set_booking_status


def _status_action(status):
    def action(modeladmin, request, queryset):
        updated = 0
        for booking in queryset:
            try:
                set_booking_status(booking, status, request.user, reason="ADMIN_ACTION")
            except (ValidationError, PermissionDenied, StaleRecordError) as exc:
                modeladmin.message_user(request, f"#{booking.pk}: {exc}", level=messages.ERROR)
            else:
                updated += 1
        if updated:
            modeladmin.message_user(request, f"{updated} booking(s) set to {status}.")

    action.__name__ = f"mark_{status}"
    action.short_description = f"Mark selected bookings as {status}"
    return action


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("event", "user", "status", "amount", "currency", "created_at")
    list_filter = ("status", "event")
    search_fields = ("event__title", "user__username", "user__email", "user__phone")
    raw_id_fields = ("user", "event")
    readonly_fields = ("status", "amount", "currency", "version", "reminder_sent_at", "created_at", "updated_at")
    ordering = ("-created_at",)
    actions = [_status_action(status) for status in BookingStatus.values]

    def has_add_permission(self, request):
        return False


@admin.register(BookingStatusLog)
class BookingStatusLogAdmin(admin.ModelAdmin):
    list_display = ("booking", "old_status", "new_status", "reason", "actor", "created_at")
    list_filter = ("new_status", "reason")
    search_fields = ("booking__user__username", "booking__event__title", "note")
    raw_id_fields = ("booking", "actor")
    ordering = ("-created_at",)
