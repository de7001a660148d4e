from django.conf import settings
from django.db import models


class MobileMoneyProvider(models.TextChoices):
    MTN = "mtn", "MTN Mobile Money"
    TIGO = "tigo", "Tigo Cash"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class MobilePayment(models.Model):
    """
    One USSD payment attempt for a booking or an enrollment.
    Completion happens on the payer's handset; an administrator reconciles
    the status by hand.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="mobile_payments"
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="mobile_payments",
    )
    enrollment = models.ForeignKey(
        "enrollments.Enrollment",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="mobile_payments",
    )
    amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=3)
    method = models.CharField(max_length=10, choices=MobileMoneyProvider.choices)
    phone_number = models.CharField(max_length=20)
    ussd_code = models.CharField(max_length=64)
    status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="mobile_pay_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(booking__isnull=False, enrollment__isnull=True)
                    | models.Q(booking__isnull=True, enrollment__isnull=False)
                ),
                name="mobile_payment_single_target",
            )
        ]

    def __str__(self):
        return f"{self.get_method_display()} {self.amount} {self.currency} ({self.status})"

    @property
    def target(self):
        return self.booking or self.enrollment
