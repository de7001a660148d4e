from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied

from .models import ContactMessage
from .services import mark_messages


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "is_read", "admin_notified", "created_at")
    list_filter = ("is_read",)
    search_fields = ("name", "email", "phone", "message")
    readonly_fields = ("name", "email", "phone", "message", "admin_notified", "sender_acknowledged", "created_at")
    ordering = ("-created_at",)
    actions = ["mark_read", "mark_unread"]

    def has_add_permission(self, request):
        return False

    def _mark(self, request, queryset, is_read):
        try:
            updated = mark_messages(queryset, request.user, is_read=is_read)
        except PermissionDenied as exc:
            self.message_user(request, str(exc), level=messages.ERROR)
            return
        self.message_user(request, f"{updated} message(s) marked as {'read' if is_read else 'unread'}.")

    @admin.action(description="Mark selected messages as read")
    def mark_read(self, request, queryset):
        self._mark(request, queryset, True)

    @admin.action(description="Mark selected messages as unread")
    def mark_unread(self, request, queryset):
        self._mark(request, queryset, False)
