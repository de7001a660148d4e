from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "kind", "title", "status", "delivery_status", "attempts", "is_read", "created_at")
    list_filter = ("kind", "delivery_status", "is_read")
    search_fields = ("user__username", "user__email", "title", "body")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    raw_id_fields = ("user",)
    readonly_fields = ("error", "sent_at", "attempts")
