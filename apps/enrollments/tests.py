import json
import smtplib
from unittest import mock

from django.core import mail
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.common.exceptions import InvalidTransitionError, NotFoundError, StaleRecordError, ValidationError
from apps.common.factories import (
    EditorFactory,
    EnrollmentFactory,
    KlassFactory,
    SuperAdminFactory,
    UserFactory,
)
from apps.enrollments.models import Enrollment, EnrollmentSchedule, EnrollmentStatus, EnrollmentStatusLog
from apps.enrollments.services import (
    confirm_enrollment,
    create_enrollment,
    delete_enrollment,
    enrollment_price,
    set_enrollment_status,
    status_detail_line,
)
from apps.notifications.models import DeliveryStatus, Notification, NotificationKind
from apps.payments.services import initiate_payment


class CreateEnrollmentTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.klass = KlassFactory(title="Salsa Basics", regular_price=10000, private_price=18000)

    def test_regular_enrollment_has_no_schedule(self):
        enrollment = create_enrollment(self.student, self.klass, "regular")
        self.assertEqual(enrollment.payment_status, EnrollmentStatus.PENDING)
        self.assertFalse(EnrollmentSchedule.objects.filter(enrollment=enrollment).exists())
        self.assertFalse(enrollment.kind.is_private)
        self.assertEqual(enrollment_price(enrollment), 10000)

    def test_private_enrollment_stores_selected_days(self):
        enrollment = create_enrollment(self.student, self.klass, "private", ["Monday", "Wednesday", "Monday"])
        self.assertEqual(enrollment.schedule.selected_days, ["Monday", "Wednesday"])
        self.assertTrue(enrollment.kind.is_private)
        self.assertEqual(enrollment_price(enrollment), 18000)

    def test_private_enrollment_needs_days(self):
        with self.assertRaises(ValidationError) as ctx:
            create_enrollment(self.student, self.klass, "private", [])
        self.assertEqual(ctx.exception.code, "no_days")
        self.assertFalse(Enrollment.objects.exists())

    def test_private_days_must_be_offered_by_the_class(self):
        with self.assertRaises(ValidationError) as ctx:
            create_enrollment(self.student, self.klass, "private", ["Monday", "Sunday"])
        self.assertEqual(ctx.exception.code, "day_not_available")
        self.assertIn("Sunday", ctx.exception.messages[0])
        self.assertFalse(Enrollment.objects.exists())
        self.assertFalse(EnrollmentSchedule.objects.exists())

    def test_inactive_class_is_not_found(self):
        self.klass.is_active = False
        self.klass.save()
        with self.assertRaises(NotFoundError):
            create_enrollment(self.student, self.klass, "regular")

    def test_non_string_days_are_rejected(self):
        for days in ([1], ["Monday", None]):
            with self.subTest(days=days):
                with self.assertRaises(ValidationError) as ctx:
                    create_enrollment(self.student, self.klass, "private", days)
                self.assertEqual(ctx.exception.code, "day_not_available")
        self.assertFalse(Enrollment.objects.exists())

    def test_schedule_failure_rolls_back_enrollment(self):
        with mock.patch(
            "apps.enrollments.services.EnrollmentSchedule.objects.create",
            side_effect=DatabaseError("disk full"),
        ):
            with self.assertRaises(DatabaseError):
                create_enrollment(self.student, self.klass, "private", ["Monday"])
        self.assertFalse(Enrollment.objects.exists())
        self.assertFalse(EnrollmentSchedule.objects.exists())

    def test_unknown_schedule_type(self):
        with self.assertRaises(ValidationError):
            create_enrollment(self.student, self.klass, "group")

    def test_missing_prices_count_as_zero(self):
        klass = KlassFactory(regular_price=None, private_price=None)
        enrollment = create_enrollment(self.student, klass, "private", ["Monday"])
        self.assertEqual(enrollment_price(enrollment), 0)

    def test_deleted_class_prices_at_zero(self):
        enrollment = create_enrollment(self.student, self.klass, "regular")
        self.klass.delete()
        enrollment.refresh_from_db()
        self.assertIsNone(enrollment.klass)
        self.assertEqual(enrollment_price(enrollment), 0)


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    WORKFLOW_ALLOW_ANY_TRANSITION=False,
    WORKFLOW_NOTIFY_ON_UNCHANGED_STATUS=False,
)
class EnrollmentStatusTests(TestCase):
    def setUp(self):
        self.admin = EditorFactory()
        self.student = UserFactory(first_name="Aline", email="aline@example.com")
        self.klass = KlassFactory(
            title="Kizomba Private",
            location="Kigali Studio",
            private_price=18000,
            available_days=["Monday", "Tuesday", "Wednesday"],
        )
        self.enrollment = create_enrollment(self.student, self.klass, "private", ["Monday", "Wednesday"])

    def test_paid_private_enrollment_sends_one_notification(self):
        with self.captureOnCommitCallbacks(execute=True):
            enrollment = set_enrollment_status(self.enrollment, "paid", self.admin)

        self.assertEqual(enrollment.payment_status, EnrollmentStatus.PAID)
        self.assertEqual(enrollment.version, 1)
        notification = Notification.objects.get()
        self.assertEqual(notification.kind, NotificationKind.ENROLLMENT)
        self.assertEqual(notification.amount, 18000)
        self.assertEqual(notification.status, "PAID")
        self.assertEqual(notification.delivery_status, DeliveryStatus.SENT)
        self.assertEqual(
            notification.detail,
            "Type: Private | Schedule: Monday, Wednesday | Location: Kigali Studio | Status: PAID",
        )

        self.assertEqual(len(mail.outbox), 1)
        email = mail.outbox[0]
        self.assertEqual(email.to, ["aline@example.com"])
        self.assertEqual(email.subject, "Your Class Enrollment is PAID - Kizomba Private")
        self.assertIn("Amount: 18000 RWF", email.body)
        self.assertTrue(any("Hi Aline" in alt[0] for alt in email.alternatives))

    def test_change_is_logged(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_enrollment_status(self.enrollment, "confirmed", self.admin, note="cash at desk")
        log = EnrollmentStatusLog.objects.get()
        self.assertEqual((log.old_status, log.new_status), ("pending", "confirmed"))
        self.assertEqual(log.actor, self.admin)
        self.assertEqual(log.note, "cash at desk")

    def test_notification_waits_for_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            set_enrollment_status(self.enrollment, "paid", self.admin)
        self.assertEqual(len(callbacks), 1)
        self.assertFalse(Notification.objects.exists())

    def test_same_status_writes_nothing(self):
        with self.captureOnCommitCallbacks(execute=True):
            enrollment = set_enrollment_status(self.enrollment, "pending", self.admin)
        self.assertEqual(enrollment.version, 0)
        self.assertFalse(EnrollmentStatusLog.objects.exists())
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(WORKFLOW_NOTIFY_ON_UNCHANGED_STATUS=True)
    def test_same_status_can_still_notify(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_enrollment_status(self.enrollment, "pending", self.admin)
        self.assertEqual(Notification.objects.count(), 1)
        self.assertFalse(EnrollmentStatusLog.objects.exists())

    def test_students_cannot_change_status(self):
        with self.assertRaises(PermissionDenied):
            set_enrollment_status(self.enrollment, "paid", self.student)
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.payment_status, EnrollmentStatus.PENDING)

    def test_canceled_is_terminal(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_enrollment_status(self.enrollment, "canceled", self.admin)
        with self.assertRaises(InvalidTransitionError):
            set_enrollment_status(self.enrollment, "paid", self.admin)

    @override_settings(WORKFLOW_ALLOW_ANY_TRANSITION=True)
    def test_permissive_mode_reopens_canceled(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_enrollment_status(self.enrollment, "canceled", self.admin)
            enrollment = set_enrollment_status(self.enrollment, "paid", self.admin)
        self.assertEqual(enrollment.payment_status, EnrollmentStatus.PAID)

    def test_refunded_is_not_an_enrollment_status(self):
        with self.assertRaises(ValidationError):
            set_enrollment_status(self.enrollment, "refunded", self.admin)

    def test_stale_version_is_rejected(self):
        with self.captureOnCommitCallbacks(execute=True):
            set_enrollment_status(self.enrollment, "confirmed", self.admin, expected_version=0)
        with self.assertRaises(StaleRecordError):
            set_enrollment_status(self.enrollment, "paid", self.admin, expected_version=0)
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.payment_status, EnrollmentStatus.CONFIRMED)

    def test_mail_failure_keeps_the_status_change(self):
        with mock.patch(
            "apps.notifications.services.EmailMultiAlternatives.send",
            side_effect=smtplib.SMTPException("relay down"),
        ):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    set_enrollment_status(self.enrollment, "paid", self.admin)

        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.payment_status, EnrollmentStatus.PAID)
        notification = Notification.objects.get()
        self.assertEqual(notification.delivery_status, DeliveryStatus.FAILED)
        self.assertIn("relay down", notification.error)

    def test_confirm_marks_paid(self):
        with self.captureOnCommitCallbacks(execute=True):
            enrollment = confirm_enrollment(self.enrollment, self.admin)
        self.assertEqual(enrollment.payment_status, EnrollmentStatus.PAID)
        self.assertEqual(EnrollmentStatusLog.objects.get().reason, "CONFIRM")

    def test_regular_detail_line(self):
        enrollment = EnrollmentFactory(klass=KlassFactory(location=""))
        self.assertEqual(status_detail_line(enrollment, "confirmed"), "Type: Regular | Schedule: Fixed Schedule | Status: CONFIRMED")


class DeleteEnrollmentTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.enrollment = create_enrollment(self.student, KlassFactory(), "private", ["Monday"])

    def test_only_super_admin_can_delete(self):
        with self.assertRaises(PermissionDenied):
            delete_enrollment(self.enrollment, EditorFactory())
        delete_enrollment(self.enrollment, SuperAdminFactory())
        self.assertFalse(Enrollment.objects.exists())
        self.assertFalse(EnrollmentSchedule.objects.exists())

    def test_enrollment_with_payments_is_kept(self):
        initiate_payment("mtn", None, "0788000000", self.student, enrollment=self.enrollment)
        with self.assertRaises(ValidationError) as ctx:
            delete_enrollment(self.enrollment, SuperAdminFactory())
        self.assertEqual(ctx.exception.code, "has_payments")
        self.assertTrue(Enrollment.objects.filter(pk=self.enrollment.pk).exists())


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class EnrollmentViewTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.admin = EditorFactory()
        self.klass = KlassFactory(regular_price=10000, private_price=18000)

    def test_student_enrolls_in_private_class(self):
        self.client.force_login(self.student)
        response = self.client.post(
            reverse("enrollments:create"),
            {"klass": self.klass.pk, "schedule_type": "private", "selected_days": ["Monday", "Wednesday"]},
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["type"], "private")
        self.assertEqual(payload["selected_days"], ["Monday", "Wednesday"])
        self.assertEqual(payload["price"], 18000)
        self.assertEqual(payload["status"], "pending")

    def test_unavailable_day_is_a_bad_request(self):
        self.client.force_login(self.student)
        response = self.client.post(
            reverse("enrollments:create"),
            {"klass": self.klass.pk, "schedule_type": "private", "selected_days": ["Sunday"]},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Sunday", response.json()["errors"][0])
        self.assertFalse(Enrollment.objects.exists())

    def test_htmx_enrollment_triggers_reload(self):
        self.client.force_login(self.student)
        response = self.client.post(
            reverse("enrollments:create"),
            {"klass": self.klass.pk, "schedule_type": "regular"},
            HTTP_HX_REQUEST="true",
        )
        self.assertEqual(response.status_code, 204)
        self.assertIn("reload-enrollments", json.loads(response["HX-Trigger"]))

    def test_admin_sets_status_with_version(self):
        enrollment = EnrollmentFactory(user=self.student, klass=self.klass)
        self.client.force_login(self.admin)
        url = reverse("enrollments:set_status", args=[enrollment.pk])

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(url, {"status": "paid", "version": 0})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "paid")
        self.assertEqual(response.json()["version"], 1)

        response = self.client.post(url, {"status": "canceled", "version": 0})
        self.assertEqual(response.status_code, 409)

    def test_student_cannot_set_status(self):
        enrollment = EnrollmentFactory(user=self.student, klass=self.klass)
        self.client.force_login(self.student)
        response = self.client.post(reverse("enrollments:set_status", args=[enrollment.pk]), {"status": "paid"})
        self.assertEqual(response.status_code, 403)

    def test_invalid_transition_is_a_bad_request(self):
        enrollment = EnrollmentFactory(user=self.student, klass=self.klass, payment_status="canceled")
        self.client.force_login(self.admin)
        response = self.client.post(reverse("enrollments:set_status", args=[enrollment.pk]), {"status": "paid"})
        self.assertEqual(response.status_code, 400)

    def test_list_filters_by_schedule_type(self):
        create_enrollment(self.student, self.klass, "private", ["Monday"])
        create_enrollment(UserFactory(), self.klass, "regular")
        self.client.force_login(self.admin)

        response = self.client.get(reverse("enrollments:list"), {"schedule_type": "private"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["results"][0]["type"], "private")

    def test_list_is_admin_only(self):
        self.client.force_login(self.student)
        self.assertEqual(self.client.get(reverse("enrollments:list")).status_code, 403)

    def test_delete_view_requires_super_admin(self):
        enrollment = EnrollmentFactory(user=self.student, klass=self.klass)
        self.client.force_login(self.admin)
        response = self.client.post(reverse("enrollments:delete", args=[enrollment.pk]))
        self.assertEqual(response.status_code, 403)

        self.client.force_login(SuperAdminFactory())
        response = self.client.post(reverse("enrollments:delete", args=[enrollment.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Enrollment.objects.filter(pk=enrollment.pk).exists())
