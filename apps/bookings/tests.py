import json
import smtplib
from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core import mail
from django.core.exceptions import PermissionDenied
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from apps.bookings.models import Booking, BookingStatus, BookingStatusLog
from apps.bookings.services import create_booking, send_event_reminders, set_booking_status
from apps.common.exceptions import AlreadyBookedError, InvalidTransitionError, NotFoundError, ValidationError
from apps.common.factories import BookingFactory, EditorFactory, EventFactory, UserFactory
from apps.events.models import Event, EventStatus
from apps.notifications.models import Notification, NotificationKind
from apps.notifications.services import retry_failed


class CreateBookingTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.event = EventFactory(title="Bachata Social", is_paid=True, price=5000, currency="RWF")

    def test_paid_event_snapshots_price(self):
        booking = create_booking(self.student, self.event)
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.amount, 5000)
        self.assertEqual(booking.currency, "RWF")

    def test_free_event_costs_nothing(self):
        event = EventFactory(is_paid=False, price=7000)
        self.assertEqual(create_booking(self.student, event).amount, 0)

    def test_second_booking_for_same_event_is_rejected(self):
        create_booking(self.student, self.event)
        with self.assertRaises(AlreadyBookedError):
            create_booking(self.student, self.event)
        self.assertEqual(Booking.objects.count(), 1)

    def test_unique_constraint_backs_up_the_duplicate_check(self):
        first = create_booking(self.student, self.event)
        with mock.patch.object(Booking.objects, "filter") as booking_filter:
            booking_filter.return_value.exists.return_value = False
            with self.assertRaises(AlreadyBookedError):
                create_booking(self.student, self.event)
        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(Booking.objects.get().pk, first.pk)
        self.assertEqual(Booking.objects.get().amount, 5000)

    def test_other_users_can_book_the_same_event(self):
        create_booking(self.student, self.event)
        create_booking(UserFactory(), self.event)
        self.assertEqual(self.event.bookings.count(), 2)

    def test_closed_event_cannot_be_booked(self):
        event = EventFactory(status=EventStatus.CANCELED)
        with self.assertRaises(ValidationError) as ctx:
            create_booking(self.student, event)
        self.assertEqual(ctx.exception.code, "event_closed")

    def test_missing_event(self):
        with self.assertRaises(NotFoundError):
            create_booking(self.student, Event(pk=424242, title="ghost"))

    def test_amount_survives_price_changes(self):
        booking = create_booking(self.student, self.event)
        self.event.price = 9000
        self.event.save()
        booking.refresh_from_db()
        self.assertEqual(booking.amount, 5000)

    def test_amount_cannot_be_rewritten(self):
        booking = create_booking(self.student, self.event)
        stored = Booking.objects.get(pk=booking.pk)
        stored.amount = 1
        with self.assertRaises(ValidationError) as ctx:
            stored.save()
        self.assertEqual(ctx.exception.code, "amount_immutable")
        self.assertEqual(Booking.objects.get(pk=booking.pk).amount, 5000)


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    WORKFLOW_ALLOW_ANY_TRANSITION=False,
)
class BookingStatusTests(TestCase):
    def setUp(self):
        self.admin = EditorFactory()
        self.student = UserFactory(email="dancer@example.com")
        self.event = EventFactory(title="Zouk Night", venue_address="Kigali Arena", price=5000)
        self.booking = create_booking(self.student, self.event)

    def test_confirm_sends_booking_email(self):
        with self.captureOnCommitCallbacks(execute=True):
            booking = set_booking_status(self.booking, "confirmed", self.admin)

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        notification = Notification.objects.get()
        self.assertEqual(notification.kind, NotificationKind.BOOKING)
        self.assertEqual(notification.amount, 5000)
        self.assertEqual(notification.status, "CONFIRMED")
        self.assertIn("Location: Kigali Arena", notification.detail)
        self.assertTrue(notification.detail.endswith("Status: CONFIRMED"))
        self.assertEqual(mail.outbox[0].subject, "Your Event Booking is CONFIRMED - Zouk Night")

    def test_status_change_keeps_amount(self):
        with self.captureOnCommitCallbacks(execute=True):
            booking = set_booking_status(self.booking, "paid", self.admin)
        self.assertEqual(booking.amount, 5000)
        self.assertEqual(BookingStatusLog.objects.get().new_status, "paid")

    def test_refund_after_payment(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_booking_status(self.booking, "paid", self.admin)
            booking = set_booking_status(self.booking, "refunded", self.admin)
        self.assertEqual(booking.status, BookingStatus.REFUNDED)
        self.assertEqual(Notification.objects.count(), 2)

    def test_refunded_is_terminal(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_booking_status(self.booking, "paid", self.admin)
            set_booking_status(self.booking, "refunded", self.admin)
        with self.assertRaises(InvalidTransitionError):
            set_booking_status(self.booking, "paid", self.admin)

    def test_students_cannot_change_status(self):
        with self.assertRaises(PermissionDenied):
            set_booking_status(self.booking, "paid", self.student)
        self.assertFalse(Notification.objects.exists())


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend", EVENT_REMINDER_WINDOW_HOURS=(47, 49))
class EventReminderTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.event = EventFactory(title="Semba Workshop", start_time=self.now + timedelta(hours=48))
        self.booking = BookingFactory(event=self.event, user=UserFactory(email="semba@example.com"))

    def test_reminder_is_sent_once(self):
        self.assertEqual(send_event_reminders(now=self.now), 1)
        self.assertEqual(mail.outbox[0].subject, "Reminder: Semba Workshop is in 2 days")
        self.assertEqual(Notification.objects.get().kind, NotificationKind.REMINDER)
        self.booking.refresh_from_db()
        self.assertIsNotNone(self.booking.reminder_sent_at)

        self.assertEqual(send_event_reminders(now=self.now), 0)
        self.assertEqual(len(mail.outbox), 1)

    def test_events_outside_the_window_are_skipped(self):
        BookingFactory(event=EventFactory(start_time=self.now + timedelta(hours=72)))
        BookingFactory(event=EventFactory(start_time=self.now + timedelta(hours=24)))
        self.assertEqual(send_event_reminders(now=self.now), 1)

    def test_failed_reminder_is_left_to_retry(self):
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("relay down"),
        ):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                self.assertEqual(send_event_reminders(now=self.now), 0)
        self.booking.refresh_from_db()
        self.assertIsNotNone(self.booking.reminder_sent_at)

        self.assertEqual(send_event_reminders(now=self.now + timedelta(hours=1)), 0)
        self.assertEqual(retry_failed(), (1, 0))
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(Notification.objects.count(), 1)

    def test_holders_without_email_get_no_reminder_rows(self):
        Booking.objects.filter(pk=self.booking.pk).update(user=UserFactory(email=""))
        self.assertEqual(send_event_reminders(now=self.now), 0)
        self.assertEqual(send_event_reminders(now=self.now + timedelta(hours=1)), 0)
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_canceled_bookings_are_not_reminded(self):
        Booking.objects.filter(pk=self.booking.pk).update(status=BookingStatus.CANCELED)
        self.assertEqual(send_event_reminders(now=self.now), 0)

    def test_command(self):
        Event.objects.filter(pk=self.event.pk).update(start_time=timezone.now() + timedelta(hours=48))
        out = StringIO()
        call_command("send_event_reminders", stdout=out)
        self.assertIn("Sent 1 event reminders", out.getvalue())


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class BookingViewTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.admin = EditorFactory()
        self.event = EventFactory(price=5000)

    def test_book_event(self):
        self.client.force_login(self.student)
        response = self.client.post(reverse("bookings:create"), {"event": self.event.pk})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["amount"], 5000)
        self.assertEqual(response.json()["status"], "pending")

    def test_duplicate_booking_is_a_conflict(self):
        self.client.force_login(self.student)
        self.client.post(reverse("bookings:create"), {"event": self.event.pk})
        response = self.client.post(reverse("bookings:create"), {"event": self.event.pk})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["errors"], ["You have already booked this event."])

    def test_duplicate_htmx_booking_shows_alert(self):
        create_booking(self.student, self.event)
        self.client.force_login(self.student)
        response = self.client.post(reverse("bookings:create"), {"event": self.event.pk}, HTTP_HX_REQUEST="true")
        self.assertEqual(response.status_code, 409)
        self.assertIn("show-sweet-alert", json.loads(response["HX-Trigger"]))

    def test_anonymous_user_is_redirected_to_login(self):
        response = self.client.post(reverse("bookings:create"), {"event": self.event.pk})
        self.assertEqual(response.status_code, 302)
        self.assertFalse(Booking.objects.exists())

    def test_admin_sets_status(self):
        booking = create_booking(self.student, self.event)
        self.client.force_login(self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("bookings:set_status", args=[booking.pk]),
                {"status": "refunded", "version": 0},
            )
        self.assertEqual(response.status_code, 400)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("bookings:set_status", args=[booking.pk]),
                {"status": "confirmed", "version": 0},
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "confirmed")

    def test_list_filters_by_status(self):
        BookingFactory(event=self.event, status=BookingStatus.PAID)
        BookingFactory(event=self.event)
        self.client.force_login(self.admin)
        response = self.client.get(reverse("bookings:list"), {"status": "paid"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)
