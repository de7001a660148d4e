from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from apps.bookings.models import BookingStatus
from apps.common.exceptions import NotFoundError, UnsupportedProviderError, ValidationError
from apps.common.factories import (
    BookingFactory,
    EditorFactory,
    KlassFactory,
    PrivateEnrollmentFactory,
    UserFactory,
)
from apps.payments.models import MobilePayment, PaymentStatus
from apps.payments.services import generate_dial_code, initiate_payment, set_payment_status, tel_uri


@override_settings(MOBILE_MONEY_MERCHANT_CODE="119966565")
class DialCodeTests(SimpleTestCase):
    def test_mtn_code(self):
        self.assertEqual(generate_dial_code("mtn", 15000), "*182*8*1*119966565*15000#")

    def test_tigo_code(self):
        self.assertEqual(generate_dial_code("tigo", 2500), "*150*01*119966565*2500#")

    def test_provider_name_is_case_insensitive(self):
        self.assertEqual(generate_dial_code(" MTN ", 0), "*182*8*1*119966565*0#")

    def test_explicit_merchant_code(self):
        self.assertEqual(generate_dial_code("mtn", 100, "555"), "*182*8*1*555*100#")

    def test_unsupported_provider(self):
        for provider in ("airtel", "", None):
            with self.subTest(provider=provider):
                with self.assertRaises(UnsupportedProviderError):
                    generate_dial_code(provider, 1000)

    def test_amount_must_be_a_whole_non_negative_number(self):
        for amount in (-1, 10.5, "1000", True):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    generate_dial_code("mtn", amount)

    def test_tel_uri_escapes_star_and_hash(self):
        self.assertEqual(tel_uri("*182*8*1*119966565*5000#"), "tel:%2A182%2A8%2A1%2A119966565%2A5000%23")


@override_settings(MOBILE_MONEY_MERCHANT_CODE="119966565")
class InitiatePaymentTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.booking = BookingFactory(user=self.student)

    def test_booking_payment_defaults_to_booking_amount(self):
        payment = initiate_payment("mtn", None, "0788000000", self.student, booking=self.booking)
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.amount, 5000)
        self.assertEqual(payment.ussd_code, "*182*8*1*119966565*5000#")
        self.assertEqual(payment.target, self.booking)
        self.assertIsNone(payment.enrollment)

    def test_private_enrollment_payment_uses_private_price(self):
        enrollment = PrivateEnrollmentFactory(user=self.student, klass=KlassFactory(private_price=18000))
        payment = initiate_payment("tigo", None, "0722000000", self.student, enrollment=enrollment)
        self.assertEqual(payment.amount, 18000)
        self.assertEqual(payment.ussd_code, "*150*01*119966565*18000#")

    def test_explicit_amount_wins(self):
        payment = initiate_payment("mtn", 2000, "0788000000", self.student, booking=self.booking)
        self.assertEqual(payment.ussd_code, "*182*8*1*119966565*2000#")

    def test_phone_number_is_required(self):
        with self.assertRaises(ValidationError) as ctx:
            initiate_payment("mtn", None, "  ", self.student, booking=self.booking)
        self.assertEqual(ctx.exception.code, "phone_required")
        self.assertFalse(MobilePayment.objects.exists())

    def test_exactly_one_target(self):
        enrollment = PrivateEnrollmentFactory(user=self.student)
        with self.assertRaises(ValidationError):
            initiate_payment("mtn", None, "0788000000", self.student)
        with self.assertRaises(ValidationError):
            initiate_payment("mtn", None, "0788000000", self.student, booking=self.booking, enrollment=enrollment)
        self.assertFalse(MobilePayment.objects.exists())

    def test_unsupported_provider_creates_nothing(self):
        with self.assertRaises(UnsupportedProviderError):
            initiate_payment("airtel", None, "0788000000", self.student, booking=self.booking)
        self.assertFalse(MobilePayment.objects.exists())

    def test_cannot_pay_for_someone_else(self):
        with self.assertRaises(PermissionDenied):
            initiate_payment("mtn", None, "0788000000", UserFactory(), booking=self.booking)

    def test_deleted_target(self):
        booking = BookingFactory(user=self.student)
        booking.delete()
        with self.assertRaises(NotFoundError):
            initiate_payment("mtn", None, "0788000000", self.student, booking=booking)

    def test_database_rejects_two_targets(self):
        enrollment = PrivateEnrollmentFactory(user=self.student)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                MobilePayment.objects.create(
                    user=self.student,
                    booking=self.booking,
                    enrollment=enrollment,
                    amount=1,
                    currency="RWF",
                    method="mtn",
                    phone_number="0788000000",
                    ussd_code="*182#",
                )

    def test_admin_reconciles_payment_without_touching_booking(self):
        payment = initiate_payment("mtn", None, "0788000000", self.student, booking=self.booking)
        with self.assertRaises(PermissionDenied):
            set_payment_status(payment, PaymentStatus.COMPLETED, self.student)

        payment = set_payment_status(payment, PaymentStatus.COMPLETED, EditorFactory())
        payment.refresh_from_db()
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertIsNotNone(payment.completed_at)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PENDING)


@override_settings(MOBILE_MONEY_MERCHANT_CODE="119966565")
class MobilePaymentViewTests(TestCase):
    def setUp(self):
        self.student = UserFactory()
        self.booking = BookingFactory(user=self.student)
        self.client.force_login(self.student)

    def test_initiate_returns_dial_code(self):
        response = self.client.post(
            reverse("payments:mobile_initiate"),
            {"provider": "mtn", "phone_number": "0788000000", "booking": self.booking.pk},
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["ussd_code"], "*182*8*1*119966565*5000#")
        self.assertEqual(payload["tel_uri"], "tel:%2A182%2A8%2A1%2A119966565%2A5000%23")
        self.assertEqual(payload["status"], "pending")

    def test_unsupported_provider_is_a_bad_request(self):
        response = self.client.post(
            reverse("payments:mobile_initiate"),
            {"provider": "airtel", "phone_number": "0788000000", "booking": self.booking.pk},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("airtel", response.json()["errors"][0])

    def test_missing_phone_is_a_bad_request(self):
        response = self.client.post(
            reverse("payments:mobile_initiate"),
            {"provider": "mtn", "booking": self.booking.pk},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], ["Please enter your phone number."])
