import smtplib
from unittest import mock

from django.contrib.admin.sites import AdminSite
from django.core import mail
from django.core.exceptions import PermissionDenied
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse

from apps.common.exceptions import ValidationError
from apps.common.factories import EditorFactory, UserFactory
from apps.contact.admin import ContactMessageAdmin
from apps.contact.models import ContactMessage
from apps.contact.services import mark_messages, submit_contact_message


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    CONTACT_INBOX_EMAIL="studio@example.com",
)
class SubmitContactMessageTests(TestCase):
    def test_message_is_stored_and_both_emails_are_sent(self):
        contact_message = submit_contact_message(
            "Grace", "grace@example.com", "Do you teach kids?\nThanks", phone="0788123456"
        )

        self.assertFalse(contact_message.is_read)
        self.assertTrue(contact_message.admin_notified)
        self.assertTrue(contact_message.sender_acknowledged)
        self.assertEqual(len(mail.outbox), 2)

        to_studio, to_sender = mail.outbox
        self.assertEqual(to_studio.to, ["studio@example.com"])
        self.assertEqual(to_studio.reply_to, ["grace@example.com"])
        self.assertEqual(to_studio.subject, "New Contact Form Submission from Grace")
        self.assertIn("0788123456", to_studio.body)
        self.assertEqual(to_sender.to, ["grace@example.com"])
        self.assertEqual(to_sender.subject, "We received your message!")
        self.assertIn("Do you teach kids?", to_sender.body)

    def test_required_fields(self):
        with self.assertRaises(ValidationError):
            submit_contact_message("Grace", "", "Hello")
        self.assertFalse(ContactMessage.objects.exists())

    def test_mail_failure_keeps_the_message(self):
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("relay down"),
        ):
            with self.assertLogs("apps.contact.services", level="ERROR"):
                contact_message = submit_contact_message("Grace", "grace@example.com", "Hello")

        contact_message.refresh_from_db()
        self.assertFalse(contact_message.admin_notified)
        self.assertFalse(contact_message.sender_acknowledged)
        self.assertEqual(ContactMessage.objects.count(), 1)


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class ContactViewTests(TestCase):
    def test_anonymous_visitor_can_send_a_message(self):
        response = self.client.post(
            reverse("contact:submit"),
            {"name": "Grace", "email": "grace@example.com", "message": "Hello"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["success"])
        self.assertEqual(ContactMessage.objects.get().name, "Grace")

    def test_invalid_email_is_a_bad_request(self):
        response = self.client.post(
            reverse("contact:submit"),
            {"name": "Grace", "email": "not-an-email", "message": "Hello"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(ContactMessage.objects.exists())


class InboxTests(TestCase):
    def setUp(self):
        self.first = ContactMessage.objects.create(name="A", email="a@example.com", message="one")
        self.second = ContactMessage.objects.create(name="B", email="b@example.com", message="two")

    def test_admin_marks_messages_read_and_unread(self):
        editor = EditorFactory()
        self.assertEqual(mark_messages(ContactMessage.objects.all(), editor), 2)
        self.assertFalse(ContactMessage.objects.filter(is_read=False).exists())

        mark_messages(ContactMessage.objects.filter(pk=self.first.pk), editor, is_read=False)
        self.first.refresh_from_db()
        self.assertFalse(self.first.is_read)

    def test_students_cannot_touch_the_inbox(self):
        with self.assertRaises(PermissionDenied):
            mark_messages(ContactMessage.objects.all(), UserFactory())
        self.assertEqual(ContactMessage.objects.filter(is_read=True).count(), 0)

    def test_admin_action(self):
        model_admin = ContactMessageAdmin(ContactMessage, AdminSite())
        request = RequestFactory().post("/")
        request.user = EditorFactory()
        with mock.patch.object(model_admin, "message_user"):
            model_admin.mark_read(request, ContactMessage.objects.filter(pk=self.second.pk))
        self.second.refresh_from_db()
        self.assertTrue(self.second.is_read)
