from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied, ValidationError

from apps.accounts.services import role_flags
from apps.common.exceptions import StaleRecordError

from .models import Enrollment, EnrollmentSchedule, EnrollmentStatus, EnrollmentStatusLog
from .services import enrollment_price, set_enrollment_status


class EnrollmentScheduleInline(admin.StackedInline):
    model = EnrollmentSchedule
    extra = 0
    can_delete = False
    readonly_fields = ("selected_days", "created_at")


def _status_action(status):
    def action(modeladmin, request, queryset):
        updated = 0
        for enrollment in queryset:
            try:
                set_enrollment_status(enrollment, status, request.user, reason="ADMIN_ACTION")
            except (ValidationError, PermissionDenied, StaleRecordError) as exc:
                modeladmin.message_user(request, f"#{enrollment.pk}: {exc}", level=messages.ERROR)
            else:
                updated += 1
        if updated:
            modeladmin.message_user(request, f"{updated} enrollment(s) set to {status}.")

    action.__name__ = f"mark_{status}"
    action.short_description = f"Mark selected enrollments as {status}"
    return action


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("klass", "user", "payment_status", "kind_label", "price", "enrolled_at")
    list_filter = ("payment_status", "klass__category")
    search_fields = (
        "klass__title",
        "user__username",
        "user__email",
        "user__first_name",
        "user__last_name",
        "user__phone",
    )
    raw_id_fields = ("user", "klass")
    readonly_fields = ("payment_status", "version", "enrolled_at", "updated_at")
    inlines = [EnrollmentScheduleInline]
    ordering = ("-enrolled_at",)
    actions = [_status_action(status) for status in EnrollmentStatus.values]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user", "klass", "schedule")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return role_flags(request.user)["is_super_admin"] and super().has_delete_permission(request, obj)

    @admin.display(description="Type")
    def kind_label(self, obj):
        return obj.kind.label

    @admin.display(description="Price")
    def price(self, obj):
        return enrollment_price(obj)


@admin.register(EnrollmentStatusLog)
class EnrollmentStatusLogAdmin(admin.ModelAdmin):
    list_display = ("enrollment", "old_status", "new_status", "reason", "actor", "created_at")
    list_filter = ("new_status", "reason")
    search_fields = ("enrollment__user__username", "enrollment__klass__title", "note")
    raw_id_fields = ("enrollment", "actor")
    ordering = ("-created_at",)
