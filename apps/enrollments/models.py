from dataclasses import dataclass

from django.conf import settings
from django.db import models


class EnrollmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PAID = "paid", "Paid"
    CANCELED = "canceled", "Canceled"


class ScheduleType(models.TextChoices):
    REGULAR = "regular", "Regular"
    PRIVATE = "private", "Private"


@dataclass(frozen=True)
class EnrollmentKind:
    """Regular (studio schedule) or private (student-chosen days) enrollment."""

    schedule_type: str
    days: tuple = ()

    @classmethod
    def regular(cls):
        return cls(ScheduleType.REGULAR.value)

    @classmethod
    def private(cls, days):
        return cls(ScheduleType.PRIVATE.value, tuple(days))

    @property
    def is_private(self) -> bool:
        return self.schedule_type == ScheduleType.PRIVATE.value

    @property
    def label(self) -> str:
        return "Private" if self.is_private else "Regular"

    @property
    def schedule_label(self) -> str:
        return ", ".join(self.days) if self.is_private else "Fixed Schedule"


class Enrollment(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrollments"
    )
    klass = models.ForeignKey(
        "classes.Class", null=True, on_delete=models.SET_NULL, related_name="enrollments"
    )
    payment_status = models.CharField(
        max_length=20,
        choices=EnrollmentStatus.choices,
        default=EnrollmentStatus.PENDING,
    )
    version = models.PositiveIntegerField(default=0)
    enrolled_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-enrolled_at"]
        indexes = [
            models.Index(fields=["klass"], name="enroll_klass_idx"),
            models.Index(fields=["user"], name="enroll_user_idx"),
            models.Index(fields=["payment_status"], name="enroll_status_idx"),
        ]

    def __str__(self):
        title = self.klass.title if self.klass_id else "deleted class"
        return f"{self.user.username} - {title}"

    @property
    def schedule_or_none(self):
        try:
            return self.schedule
        except EnrollmentSchedule.DoesNotExist:
            return None

    @property
    def kind(self) -> EnrollmentKind:
        schedule = self.schedule_or_none
        if schedule is None:
            return EnrollmentKind.regular()
        return EnrollmentKind.private(schedule.selected_days)


class EnrollmentSchedule(models.Model):
    """Days picked by a private student; its presence makes the enrollment private."""

    enrollment = models.OneToOneField(
        Enrollment, on_delete=models.CASCADE, related_name="schedule"
    )
    selected_days = models.JSONField(default=list)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.enrollment_id}: {', '.join(self.selected_days)}"


class EnrollmentStatusLog(models.Model):
    enrollment = models.ForeignKey(
        Enrollment, on_delete=models.CASCADE, related_name="status_logs"
    )
    old_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20)
    reason = models.CharField(max_length=50, blank=True)
    note = models.CharField(max_length=255, blank=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.enrollment_id}: {self.old_status} -> {self.new_status} ({self.reason})"
