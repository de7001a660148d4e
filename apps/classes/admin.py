from django.contrib import admin

from .models import Class


@admin.register(Class)
class ClassAdmin(admin.ModelAdmin):
    list_display = ("title", "category", "regular_price", "private_price", "currency", "capacity", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("title", "location", "description")
    ordering = ("title",)
