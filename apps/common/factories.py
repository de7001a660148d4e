from datetime import timedelta

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone
from factory import SubFactory, post_generation
from faker import Faker

from apps.accounts.models import UserRole
from apps.bookings.models import Booking, BookingStatus
from apps.classes.models import Class as Klass, ClassCategory
from apps.enrollments.models import Enrollment, EnrollmentSchedule, EnrollmentStatus
from apps.events.models import Event, EventStatus

User = get_user_model()
fake = Faker()


def _safe_digits(s, max_len=20):
    digits = "".join(ch for ch in str(s) if ch.isdigit())
    return digits[:max_len]


def _safe_text(s, max_len):
    return str(s)[:max_len]


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"dancer{n:05d}")
    password = factory.django.Password("password123")
    first_name = factory.LazyAttribute(lambda o: _safe_text(fake.first_name(), 150))
    last_name = factory.LazyAttribute(lambda o: _safe_text(fake.last_name(), 150))
    email = factory.Sequence(lambda n: f"dancer{n:05d}@example.com")
    is_active = True
    role = UserRole.STUDENT
    phone = factory.LazyAttribute(lambda o: _safe_digits(fake.msisdn(), 20))

    @post_generation
    def groups(self, create, extracted, **kwargs):
        if not create:
            return
        if extracted:
            for g in extracted:
                self.groups.add(g)


class EditorFactory(UserFactory):
    role = UserRole.EDITOR
    is_staff = True


class SuperAdminFactory(UserFactory):
    role = UserRole.SUPER_ADMIN
    is_staff = True


class KlassFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Klass

    title = factory.Sequence(lambda n: f"Dance Class {n}")
    category = factory.LazyAttribute(lambda o: fake.random_element(elements=ClassCategory.values))
    description = factory.LazyAttribute(lambda o: _safe_text(fake.text(max_nb_chars=120), 500))
    location = "Kigali Studio"
    schedule = "Mondays & Wednesdays 18:00"
    regular_price = 10000
    private_price = 18000
    currency = "RWF"
    fixed_days = factory.LazyFunction(lambda: ["Monday", "Wednesday"])
    available_days = factory.LazyFunction(lambda: ["Monday", "Tuesday", "Wednesday", "Friday"])
    is_active = True


class EventFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Event

    title = factory.Sequence(lambda n: f"Social Night {n}")
    description = factory.LazyAttribute(lambda o: _safe_text(fake.text(max_nb_chars=120), 500))
    start_time = factory.LazyFunction(lambda: timezone.now() + timedelta(days=7))
    end_time = factory.LazyAttribute(lambda o: o.start_time + timedelta(hours=3))
    venue_address = "KG 7 Ave, Kigali"
    is_paid = True
    price = 5000
    currency = "RWF"
    status = EventStatus.UPCOMING


class EnrollmentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Enrollment

    user = SubFactory(UserFactory)
    klass = SubFactory(KlassFactory)
    payment_status = EnrollmentStatus.PENDING


class PrivateEnrollmentFactory(EnrollmentFactory):
    schedule = factory.RelatedFactory(
        "apps.common.factories.EnrollmentScheduleFactory",
        factory_related_name="enrollment",
    )


class EnrollmentScheduleFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EnrollmentSchedule

    enrollment = SubFactory(EnrollmentFactory)
    selected_days = factory.LazyFunction(lambda: ["Monday", "Wednesday"])


class BookingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Booking

    user = SubFactory(UserFactory)
    event = SubFactory(EventFactory)
    status = BookingStatus.PENDING
    amount = factory.LazyAttribute(lambda o: o.event.booking_price)
    currency = factory.LazyAttribute(lambda o: o.event.currency)
