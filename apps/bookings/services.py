import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.bookings.models import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, BookingStatusLog
from apps.common import workflow
from apps.common.exceptions import AlreadyBookedError, NotFoundError, ValidationError
from apps.events.models import Event, EventStatus
from apps.notifications import services as notification_services
from apps.notifications.models import DeliveryStatus, NotificationKind

logger = logging.getLogger(__name__)


def create_booking(user, event: Event | None) -> Booking:
    if event is None or not Event.objects.filter(pk=event.pk).exists():
        raise NotFoundError("This event does not exist.")
    if event.status != EventStatus.UPCOMING:
        raise ValidationError(f"{event.title} is no longer open for booking.", code="event_closed")
    if Booking.objects.filter(user=user, event=event).exists():
        raise AlreadyBookedError()

    try:
        with transaction.atomic():
            booking = Booking.objects.create(
                user=user,
                event=event,
                status=BookingStatus.PENDING,
                amount=event.booking_price,
                currency=event.currency,
            )
    except IntegrityError:
        # lost the race against a concurrent request for the same pair
        raise AlreadyBookedError()

    logger.info("User %s booked event %s, booking #%s (%s %s)", user.pk, event.pk, booking.pk, booking.amount, booking.currency)
    return booking


def _event_details(event: Event) -> list[str]:
    local_start = timezone.localtime(event.start_time)
    parts = [f"Date: {local_start:%A, %d %B %Y %H:%M}"]
    if event.venue_address:
        parts.append(f"Location: {event.venue_address}")
    return parts


def status_detail_line(booking: Booking, status: str) -> str:
    return " | ".join(_event_details(booking.event) + [f"Status: {status.upper()}"])


def _notification_payload(booking: Booking, status: str) -> dict:
    return {
        "kind": NotificationKind.BOOKING.value,
        "user_id": booking.user_id,
        "subject_line": booking.event.title,
        "detail_line": status_detail_line(booking, status),
        "amount": booking.amount,
        "currency": booking.currency,
        "status": status,
    }


def set_booking_status(
    booking: Booking,
    new_status: str,
    actor,
    *,
    expected_version: int | None = None,
    reason: str = "MANUAL",
    note: str = "",
) -> Booking:
    with transaction.atomic():
        change = workflow.change_status(
            booking,
            new_status,
            actor=actor,
            field="status",
            states=BookingStatus.values,
            expected_version=expected_version,
        )
        if change.changed:
            BookingStatusLog.objects.create(
                booking=change.record,
                old_status=change.old_status,
                new_status=change.new_status,
                reason=reason,
                note=note,
                actor=actor,
            )
        if change.should_notify:
            workflow.after_commit(
                notification_services.notify, **_notification_payload(change.record, change.new_status)
            )
    return change.record


def send_event_reminders(now=None) -> int:
    """
    E-mail everyone holding an active booking for an event that starts inside
    the reminder window (47-49 hours ahead by default). Holders without an
    e-mail address are passed over. Each booking gets at most one reminder
    row; failed sends are left to ``retry_failed_notifications``.
    Returns the number of reminders delivered.
    """
    now = now or timezone.now()
    start_hours, end_hours = getattr(settings, "EVENT_REMINDER_WINDOW_HOURS", (47, 49))
    bookings = (
        Booking.objects.select_related("event", "user")
        .filter(
            event__status=EventStatus.UPCOMING,
            event__start_time__gte=now + timedelta(hours=start_hours),
            event__start_time__lte=now + timedelta(hours=end_hours),
            status__in=ACTIVE_BOOKING_STATUSES,
            reminder_sent_at__isnull=True,
        )
        .order_by("event__start_time", "pk")
    )

    delivered = 0
    for booking in bookings:
        if not booking.user.preferred_email():
            continue
        notification = notification_services.notify(
            NotificationKind.REMINDER.value,
            booking.user_id,
            booking.event.title,
            " | ".join(_event_details(booking.event)),
            currency=booking.currency,
        )
        if notification is None:
            continue
        Booking.objects.filter(pk=booking.pk).update(reminder_sent_at=now)
        if notification.delivery_status == DeliveryStatus.SENT:
            delivered += 1
    logger.info("Sent %s event reminders", delivered)
    return delivered
