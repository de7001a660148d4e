import json
from io import StringIO

from django.core.exceptions import PermissionDenied
from django.core.management import call_command
from django.test import RequestFactory, TestCase, SimpleTestCase, override_settings

from apps.accounts.models import User, UserRole
from apps.bookings.models import Booking
from apps.classes.models import Class
from apps.common import workflow
from apps.common.exceptions import (
    AlreadyBookedError,
    InvalidTransitionError,
    NotFoundError,
    StaleRecordError,
    ValidationError,
)
from apps.common.factories import BookingFactory
from apps.common.utils.http import error_response
from apps.enrollments.models import Enrollment, EnrollmentStatus
from apps.events.models import Event


@override_settings(WORKFLOW_ALLOW_ANY_TRANSITION=False)
class TransitionTableTests(SimpleTestCase):
    states = ["pending", "confirmed", "paid", "canceled", "refunded"]

    def test_forward_transitions_are_allowed(self):
        for old, new in [
            ("pending", "confirmed"),
            ("pending", "paid"),
            ("pending", "canceled"),
            ("confirmed", "paid"),
            ("confirmed", "refunded"),
            ("paid", "refunded"),
            ("paid", "canceled"),
        ]:
            with self.subTest(old=old, new=new):
                self.assertTrue(workflow.check_transition(old, new, self.states))

    def test_terminal_states_reject_everything(self):
        for old in ("canceled", "refunded"):
            for new in ("pending", "confirmed", "paid"):
                with self.subTest(old=old, new=new):
                    with self.assertRaises(InvalidTransitionError):
                        workflow.check_transition(old, new, self.states)

    def test_same_status_is_a_noop(self):
        self.assertFalse(workflow.check_transition("paid", "paid", self.states))

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            workflow.check_transition("pending", "shipped", self.states)
        self.assertEqual(ctx.exception.code, "invalid_status")

    def test_state_set_limits_allowed_targets(self):
        # enrollments have no refunded state
        self.assertEqual(
            workflow.allowed_transitions("confirmed", EnrollmentStatus.values),
            {"paid", "canceled"},
        )

    def test_enum_members_are_accepted(self):
        self.assertTrue(workflow.check_transition("pending", EnrollmentStatus.PAID, EnrollmentStatus.values))

    @override_settings(WORKFLOW_ALLOW_ANY_TRANSITION=True)
    def test_permissive_mode_allows_any_move(self):
        self.assertTrue(workflow.check_transition("canceled", "pending", self.states))
        self.assertEqual(
            workflow.allowed_transitions("refunded", self.states),
            {"pending", "confirmed", "paid", "canceled"},
        )


class ErrorResponseTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def _payload(self, response):
        return json.loads(response.content)

    def test_already_booked_maps_to_conflict(self):
        response = error_response(self.factory.post("/"), AlreadyBookedError())
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self._payload(response), {"errors": ["You have already booked this event."]})

    def test_stale_record_maps_to_conflict(self):
        booking = BookingFactory()
        response = error_response(self.factory.post("/"), StaleRecordError(booking, 3))
        self.assertEqual(response.status_code, 409)
        self.assertIn("expected version 3", self._payload(response)["errors"][0])

    def test_validation_permission_and_missing(self):
        request = self.factory.post("/")
        self.assertEqual(error_response(request, ValidationError("bad")).status_code, 400)
        self.assertEqual(error_response(request, PermissionDenied()).status_code, 403)
        self.assertEqual(error_response(request, NotFoundError("gone")).status_code, 404)

    def test_htmx_requests_get_an_alert_trigger(self):
        request = self.factory.post("/", HTTP_HX_REQUEST="true")
        response = error_response(request, ValidationError("Pick a day"))
        self.assertEqual(response.status_code, 422)
        trigger = json.loads(response["HX-Trigger"])
        self.assertEqual(trigger["show-sweet-alert"]["text"], "Pick a day")

    def test_unrelated_errors_propagate(self):
        with self.assertRaises(RuntimeError):
            error_response(self.factory.post("/"), RuntimeError("boom"))


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class SeedStudioCommandTests(TestCase):
    def test_seed_creates_demo_data(self):
        out = StringIO()
        call_command("seed_studio", students=3, classes=2, events=2, seed=7, stdout=out)

        self.assertTrue(User.objects.filter(username="admin", role=UserRole.SUPER_ADMIN).exists())
        self.assertEqual(User.objects.filter(role=UserRole.STUDENT).count(), 3)
        self.assertEqual(Class.objects.count(), 2)
        self.assertEqual(Event.objects.count(), 2)
        self.assertEqual(Enrollment.objects.count(), 3)
        self.assertLessEqual(Booking.objects.count(), 6)
        self.assertIn("Done", out.getvalue())

    def test_seed_without_classes_still_books_events(self):
        call_command("seed_studio", students=2, classes=0, events=1, seed=3, stdout=StringIO())
        self.assertFalse(Enrollment.objects.exists())
        self.assertEqual(User.objects.filter(role=UserRole.STUDENT).count(), 2)
