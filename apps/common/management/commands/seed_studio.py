import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker

from apps.accounts.models import User, UserRole
from apps.bookings.models import Booking
from apps.bookings.services import create_booking
from apps.classes.models import Class as Klass
from apps.common.exceptions import AlreadyBookedError
from apps.common.factories import EventFactory, KlassFactory, UserFactory
from apps.common.models import Weekday
from apps.enrollments.models import ScheduleType
from apps.enrollments.services import create_enrollment
from apps.events.models import Event

fake = Faker()


class Command(BaseCommand):
    help = "Seed the database with demo classes, events, dancers, enrollments and bookings."

    def add_arguments(self, parser):
        parser.add_argument("--students", type=int, default=20, help="Number of student accounts")
        parser.add_argument("--classes", type=int, default=6, help="Number of dance classes")
        parser.add_argument("--events", type=int, default=4, help="Number of upcoming events")
        parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")

    @transaction.atomic
    def handle(self, *args, **options):
        if options["seed"] is not None:
            random.seed(options["seed"])
            Faker.seed(options["seed"])

        self.stdout.write(self.style.SUCCESS("--- Starting Studio Seeding ---"))

        admin, created = User.objects.get_or_create(
            username="admin",
            defaults={
                "email": "admin@example.com",
                "role": UserRole.SUPER_ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created:
            admin.set_password("admin123")
            admin.save(update_fields=["password"])
            self.stdout.write(self.style.SUCCESS("Created super admin 'admin' (password: admin123)."))

        students = [UserFactory() for _ in range(options["students"])]
        self.stdout.write(self.style.SUCCESS(f"Created {len(students)} students."))

        weekdays = list(Weekday.values)
        classes = []
        for _ in range(options["classes"]):
            available = sorted(random.sample(weekdays, 4), key=weekdays.index)
            classes.append(
                KlassFactory(
                    fixed_days=available[:2],
                    available_days=available,
                    regular_price=random.choice([8000, 10000, 12000]),
                    private_price=random.choice([15000, 18000, 25000]),
                )
            )
        self.stdout.write(self.style.SUCCESS(f"Created {len(classes)} classes."))

        now = timezone.now()
        events = [
            EventFactory(
                start_time=now + timedelta(days=random.randint(2, 30), hours=random.randint(0, 6)),
                is_paid=paid,
                price=random.choice([3000, 5000, 10000]) if paid else None,
            )
            for paid in (random.random() < 0.7 for _ in range(options["events"]))
        ]
        self.stdout.write(self.style.SUCCESS(f"Created {len(events)} events."))

        enrollments = 0
        bookings = 0
        for student in students:
            if classes:
                klass = random.choice(classes)
                if random.random() < 0.3:
                    days = random.sample(klass.available_days, random.randint(1, 2))
                    create_enrollment(student, klass, ScheduleType.PRIVATE, days)
                else:
                    create_enrollment(student, klass, ScheduleType.REGULAR)
                enrollments += 1

            for event in random.sample(events, min(len(events), random.randint(0, 2))):
                try:
                    create_booking(student, event)
                except AlreadyBookedError:
                    continue
                bookings += 1

        self.stdout.write(self.style.SUCCESS(f"Created {enrollments} enrollments and {bookings} bookings."))
        self.stdout.write(
            self.style.SUCCESS(
                f"--- Done: {Klass.objects.count()} classes, {Event.objects.count()} events, "
                f"{Booking.objects.count()} bookings in total ---"
            )
        )
