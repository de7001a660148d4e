import logging

from django.conf import settings

from apps.accounts.services import require_admin
from apps.common.exceptions import ValidationError
from apps.contact.models import ContactMessage
from apps.notifications.services import send_templated_email, site_context

logger = logging.getLogger(__name__)


def _send(template: str, context: dict, to: list[str], reply_to: list[str] | None = None) -> bool:
    try:
        send_templated_email(template, context, to, reply_to=reply_to)
    except Exception:
        logger.exception("Could not send %s e-mail to %s", template, ", ".join(to))
        return False
    return True


def submit_contact_message(name: str, email: str, message: str, phone: str = "") -> ContactMessage:
    """
    Store a contact form message, then e-mail the studio inbox (reply-to set
    to the sender) and send the sender an acknowledgement. Both e-mails are
    best-effort; the message is kept either way.
    """
    name, email, message = (name or "").strip(), (email or "").strip(), (message or "").strip()
    if not (name and email and message):
        raise ValidationError("Name, e-mail and message are required.", code="incomplete_message")

    contact_message = ContactMessage.objects.create(
        name=name, email=email, phone=(phone or "").strip(), message=message
    )
    context = {"contact": contact_message, **site_context()}
    inbox = getattr(settings, "CONTACT_INBOX_EMAIL", settings.SUPPORT_EMAIL)

    contact_message.admin_notified = _send("emails/contact_admin", context, [inbox], reply_to=[email])
    contact_message.sender_acknowledged = _send("emails/contact_receipt", context, [email])
    contact_message.save(update_fields=["admin_notified", "sender_acknowledged"])
    logger.info("Contact message #%s stored from %s", contact_message.pk, email)
    return contact_message


def mark_messages(queryset, actor, *, is_read: bool = True) -> int:
    require_admin(actor)
    return queryset.update(is_read=is_read)
