from django.contrib import admin

from .models import Event


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "start_time", "venue_address", "is_paid", "price", "currency", "status")
    list_filter = ("status", "is_paid")
    search_fields = ("title", "venue_address")
    date_hierarchy = "start_time"
    ordering = ("-start_time",)
