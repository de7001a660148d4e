from django.db import models


class NotificationKind(models.TextChoices):
    BOOKING = "booking", "Booking"
    ENROLLMENT = "enrollment", "Enrollment"
    REMINDER = "reminder", "Event reminder"


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped (no e-mail)"


class Notification(models.Model):
    user = models.ForeignKey(
        "accounts.User", on_delete=models.CASCADE, related_name="notifications"
    )
    kind = models.CharField(max_length=20, choices=NotificationKind.choices)
    title = models.CharField(max_length=200)
    body = models.TextField(blank=True)
    detail = models.CharField(max_length=500, blank=True)
    status = models.CharField(max_length=20, blank=True)
    amount = models.PositiveIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=3, blank=True)
    recipient = models.EmailField(blank=True)
    delivery_status = models.CharField(
        max_length=20, choices=DeliveryStatus.choices, default=DeliveryStatus.PENDING
    )
    error = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user"], name="notif_user_idx"),
            models.Index(fields=["is_read"], name="notif_is_read_idx"),
            models.Index(fields=["delivery_status"], name="notif_delivery_idx"),
        ]

    def __str__(self):
        return f"{self.user.username}: {self.title}"
