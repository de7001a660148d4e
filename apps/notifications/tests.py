import smtplib
from io import StringIO
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings

from apps.common.factories import UserFactory
from apps.notifications.models import DeliveryStatus, Notification
from apps.notifications.services import notify, retry_failed


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend", DEFAULT_CURRENCY="RWF")
class NotifyTests(TestCase):
    def setUp(self):
        self.user = UserFactory(first_name="Jean", email="jean@example.com")

    def test_booking_email_is_sent_and_logged(self):
        notification = notify("booking", self.user.pk, "Salsa Night", "Date: Friday | Status: PAID", 5000, "RWF", "paid")

        self.assertEqual(notification.delivery_status, DeliveryStatus.SENT)
        self.assertEqual(notification.recipient, "jean@example.com")
        self.assertEqual(notification.attempts, 1)
        self.assertIsNotNone(notification.sent_at)
        self.assertIn("Amount: 5000 RWF", notification.body)

        email = mail.outbox[0]
        self.assertEqual(email.subject, "Your Event Booking is PAID - Salsa Night")
        self.assertEqual(email.alternatives[0][1], "text/html")
        self.assertIn("Date: Friday | Status: PAID", email.body)

    def test_amount_line_is_omitted_without_amount(self):
        notify("enrollment", self.user.pk, "Konpa", status="confirmed")
        self.assertNotIn("Amount:", mail.outbox[0].body)

    def test_currency_defaults_to_studio_currency(self):
        notification = notify("enrollment", self.user.pk, "Konpa", amount=1000)
        self.assertEqual(notification.currency, "RWF")

    def test_user_without_email_is_skipped(self):
        user = UserFactory(email="")
        notification = notify("booking", user.pk, "Salsa Night", status="paid")
        self.assertEqual(notification.delivery_status, DeliveryStatus.SKIPPED)
        self.assertEqual(len(mail.outbox), 0)

    def test_unknown_user_is_logged_not_raised(self):
        with self.assertLogs("apps.notifications.services", level="ERROR"):
            self.assertIsNone(notify("booking", 999999, "Salsa Night"))
        self.assertFalse(Notification.objects.exists())

    def test_smtp_failure_is_recorded(self):
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("timeout"),
        ):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                notification = notify("booking", self.user.pk, "Salsa Night", status="paid")

        self.assertEqual(notification.delivery_status, DeliveryStatus.FAILED)
        self.assertEqual(notification.error, "timeout")
        self.assertEqual(len(mail.outbox), 0)


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class RetryFailedTests(TestCase):
    def setUp(self):
        self.user = UserFactory(email="retry@example.com")
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("down"),
        ):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                self.notification = notify("enrollment", self.user.pk, "Zouk Level 1", status="paid")

    def test_retry_resends_failed_rows(self):
        self.assertEqual(retry_failed(), (1, 0))
        self.notification.refresh_from_db()
        self.assertEqual(self.notification.delivery_status, DeliveryStatus.SENT)
        self.assertEqual(self.notification.attempts, 2)
        self.assertEqual(self.notification.error, "")
        self.assertEqual(len(mail.outbox), 1)

    def test_retry_counts_rows_that_fail_again(self):
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("still down"),
        ):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                self.assertEqual(retry_failed(), (0, 1))
        self.notification.refresh_from_db()
        self.assertEqual(self.notification.delivery_status, DeliveryStatus.FAILED)

    def test_rows_skipped_on_retry_are_not_counted_as_sent(self):
        type(self.user).objects.filter(pk=self.user.pk).update(email="")
        self.assertEqual(retry_failed(), (0, 0))
        self.notification.refresh_from_db()
        self.assertEqual(self.notification.delivery_status, DeliveryStatus.SKIPPED)
        self.assertEqual(len(mail.outbox), 0)

    def test_command(self):
        out = StringIO()
        call_command("retry_failed_notifications", limit=10, stdout=out)
        self.assertIn("Re-sent 1 notifications, 0 still failing.", out.getvalue())
