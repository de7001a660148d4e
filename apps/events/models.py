from django.conf import settings
from django.db import models

from apps.common.models import TimeStampedModel


class EventStatus(models.TextChoices):
    UPCOMING = "upcoming", "Upcoming"
    COMPLETED = "completed", "Completed"
    CANCELED = "canceled", "Canceled"


def _default_currency():
    return settings.DEFAULT_CURRENCY


class Event(TimeStampedModel):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    venue_address = models.CharField(max_length=255, blank=True)
    is_paid = models.BooleanField(default=False)
    price = models.PositiveIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=3, default=_default_currency)
    capacity = models.PositiveIntegerField(default=50)
    status = models.CharField(max_length=20, choices=EventStatus.choices, default=EventStatus.UPCOMING)

    class Meta:
        ordering = ["start_time"]
        indexes = [
            models.Index(fields=["start_time"], name="events_start_time_idx"),
            models.Index(fields=["status"], name="events_status_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.start_time:%Y-%m-%d})"

    @property
    def booking_price(self) -> int:
        """Amount a new booking is charged."""
        if not self.is_paid:
            return 0
        return max(int(self.price or 0), 0)
