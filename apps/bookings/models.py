from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PAID = "paid", "Paid"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"


ACTIVE_BOOKING_STATUSES = [
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.PAID.value,
]


class Booking(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bookings"
    )
    event = models.ForeignKey(
        "events.Event", on_delete=models.CASCADE, related_name="bookings"
    )
    status = models.CharField(
        max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING
    )
    amount = models.PositiveIntegerField(default=0, help_text="Event price at booking time")
    currency = models.CharField(max_length=3)
    version = models.PositiveIntegerField(default=0)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        unique_together = (("user", "event"),)
        indexes = [
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.event.title}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        if "amount" in instance.__dict__:
            instance._stored_amount = instance.amount
        return instance

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        amount_written = update_fields is None or "amount" in update_fields
        stored = getattr(self, "_stored_amount", None)
        if self.pk and amount_written and stored is not None and self.amount != stored:
            raise ValidationError(
                "The amount of an existing booking cannot be changed.", code="amount_immutable"
            )
        super().save(*args, **kwargs)
        self._stored_amount = self.amount


class BookingStatusLog(models.Model):
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="status_logs")
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
        return f"{self.booking_id}: {self.old_status} -> {self.new_status} ({self.reason})"
