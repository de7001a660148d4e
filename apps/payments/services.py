import logging
from urllib.parse import quote

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from apps.accounts.services import require_admin
from apps.bookings.models import Booking
from apps.common.exceptions import NotFoundError, UnsupportedProviderError, ValidationError
from apps.enrollments.models import Enrollment
from apps.enrollments.services import enrollment_price
from apps.payments.models import MobileMoneyProvider, MobilePayment, PaymentStatus

logger = logging.getLogger(__name__)

# USSD menus of the two supported carriers, filled with merchant code and amount.
DIAL_CODE_FORMATS = {
    MobileMoneyProvider.MTN.value: "*182*8*1*{merchant}*{amount}#",
    MobileMoneyProvider.TIGO.value: "*150*01*{merchant}*{amount}#",
}


def normalize_provider(provider) -> str:
    value = provider.strip().lower() if isinstance(provider, str) else provider
    if value not in DIAL_CODE_FORMATS:
        raise UnsupportedProviderError(provider)
    return value


def generate_dial_code(provider: str, amount: int, merchant_code: str | None = None) -> str:
    """
    >>> generate_dial_code("mtn", 15000, "119966565")
    '*182*8*1*119966565*15000#'
    """
    provider = normalize_provider(provider)
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError("Amount must be a non-negative whole number.", code="invalid_amount")
    merchant_code = merchant_code or settings.MOBILE_MONEY_MERCHANT_CODE
    return DIAL_CODE_FORMATS[provider].format(merchant=merchant_code, amount=amount)


def tel_uri(ussd_code: str) -> str:
    return f"tel:{quote(ussd_code, safe='')}"


def _target_amount(booking: Booking | None, enrollment: Enrollment | None) -> tuple[int, str]:
    if booking is not None:
        return booking.amount, booking.currency
    klass = enrollment.klass
    currency = klass.currency if klass else settings.DEFAULT_CURRENCY
    return enrollment_price(enrollment), currency


def initiate_payment(
    provider: str,
    amount: int | None,
    phone_number: str,
    user,
    *,
    booking: Booking | None = None,
    enrollment: Enrollment | None = None,
) -> MobilePayment:
    phone_number = (phone_number or "").strip()
    if not phone_number:
        raise ValidationError("Please enter your phone number.", code="phone_required")
    if (booking is None) == (enrollment is None):
        raise ValidationError(
            "A payment must be linked to exactly one booking or enrollment.",
            code="invalid_target",
        )
    target = booking or enrollment
    if target.pk is None or not type(target).objects.filter(pk=target.pk).exists():
        raise NotFoundError(f"{target._meta.verbose_name} does not exist.")
    if target.user_id != user.pk:
        raise PermissionDenied("You can only pay for your own bookings and enrollments.")

    default_amount, currency = _target_amount(booking, enrollment)
    if amount is None:
        amount = default_amount
    ussd_code = generate_dial_code(provider, amount)

    with transaction.atomic():
        payment = MobilePayment.objects.create(
            user=user,
            booking=booking,
            enrollment=enrollment,
            amount=amount,
            currency=currency,
            method=normalize_provider(provider),
            phone_number=phone_number,
            ussd_code=ussd_code,
            status=PaymentStatus.PENDING,
        )
    logger.info(
        "Mobile payment #%s initiated by user %s via %s for %s #%s",
        payment.pk,
        user.pk,
        payment.method,
        target._meta.model_name,
        target.pk,
    )
    return payment


def set_payment_status(payment: MobilePayment, status: str, actor) -> MobilePayment:
    """Manual reconciliation; the linked booking/enrollment is left untouched."""
    require_admin(actor)
    if status not in PaymentStatus.values:
        raise ValidationError(f"Unknown payment status {status!r}.", code="invalid_status")
    payment.status = status
    payment.completed_at = timezone.now() if status == PaymentStatus.COMPLETED else None
    payment.save(update_fields=["status", "completed_at"])
    logger.info("Mobile payment #%s marked %s by %s", payment.pk, status, actor)
    return payment
