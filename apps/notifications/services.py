from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

from apps.accounts.services import UserContact, get_user_contact
from apps.notifications.models import DeliveryStatus, Notification, NotificationKind

logger = logging.getLogger(__name__)

TEMPLATES = {
    NotificationKind.BOOKING.value: "emails/booking_status",
    NotificationKind.ENROLLMENT.value: "emails/enrollment_status",
    NotificationKind.REMINDER.value: "emails/event_reminder",
}


def site_context() -> dict:
    return {
        "site_name": getattr(settings, "SITE_NAME", "Dance Well"),
        "site_url": getattr(settings, "SITE_URL", ""),
        "support_email": getattr(settings, "SUPPORT_EMAIL", settings.DEFAULT_FROM_EMAIL),
        "support_phone": getattr(settings, "SUPPORT_PHONE", ""),
    }


def _context(notification: Notification, contact: UserContact) -> dict:
    return {
        "user_name": contact.display_name,
        "item_title": notification.title,
        "item_details": notification.detail,
        "amount": notification.amount,
        "currency": notification.currency,
        "status": notification.status,
        **site_context(),
    }


def send_templated_email(template: str, context: dict, to: list[str], reply_to: list[str] | None = None) -> str:
    """Render ``<template>_subject.txt`` / ``<template>_body.html`` and send them. Returns the plain-text body."""
    subject = " ".join(render_to_string(f"{template}_subject.txt", context).split())
    html_body = render_to_string(f"{template}_body.html", context)
    text_body = strip_tags(html_body)

    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=to,
        reply_to=reply_to,
    )
    message.attach_alternative(html_body, "text/html")
    message.send(fail_silently=False)
    return text_body


def _deliver(notification: Notification, contact: UserContact) -> Notification:
    notification.attempts += 1
    if not contact.email:
        notification.delivery_status = DeliveryStatus.SKIPPED
        notification.save(update_fields=["attempts", "delivery_status"])
        logger.warning("User %s has no e-mail address, %s notification skipped", notification.user_id, notification.kind)
        return notification

    try:
        text_body = send_templated_email(
            TEMPLATES[str(notification.kind)], _context(notification, contact), [contact.email]
        )
    except Exception as exc:
        notification.delivery_status = DeliveryStatus.FAILED
        notification.error = str(exc) or exc.__class__.__name__
        notification.save(update_fields=["attempts", "delivery_status", "error"])
        raise

    notification.recipient = contact.email
    notification.body = text_body.strip()
    notification.delivery_status = DeliveryStatus.SENT
    notification.error = ""
    notification.sent_at = timezone.now()
    notification.save(
        update_fields=["attempts", "recipient", "body", "delivery_status", "error", "sent_at"]
    )
    logger.info("Sent %s notification #%s to %s", notification.kind, notification.pk, contact.email)
    return notification


def notify(
    kind: str,
    user_id,
    subject_line: str,
    detail_line: str = "",
    amount: int | None = None,
    currency: str = "",
    status: str = "",
) -> Notification | None:
    """
    Best-effort e-mail about a booking or enrollment status change.

    Never raises: lookup, rendering and SMTP errors are logged and recorded on
    the Notification row. Delivery is at most once; failed rows can be re-sent
    with the ``retry_failed_notifications`` command.
    """
    notification = None
    try:
        contact = get_user_contact(user_id)
        notification = Notification.objects.create(
            user_id=user_id,
            kind=kind,
            title=subject_line[:200],
            detail=detail_line[:500],
            status=(status or "").upper(),
            amount=amount,
            currency=currency or settings.DEFAULT_CURRENCY,
        )
        return _deliver(notification, contact)
    except Exception:
        logger.exception("Could not send %s notification to user %s", kind, user_id)
        return notification


def retry_failed(limit: int = 100) -> tuple[int, int]:
    """Re-send failed notifications. Returns (sent, still_failed); skipped rows count as neither."""
    sent = failed = 0
    queryset = Notification.objects.filter(delivery_status=DeliveryStatus.FAILED).order_by("created_at")
    for notification in queryset[:limit]:
        try:
            notification = _deliver(notification, get_user_contact(notification.user_id))
        except Exception:
            logger.exception("Retry of notification #%s failed", notification.pk)
            failed += 1
            continue
        if notification.delivery_status == DeliveryStatus.SENT:
            sent += 1
    return sent, failed
