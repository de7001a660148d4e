from django.core.management.base import BaseCommand

from apps.bookings.services import send_event_reminders


class Command(BaseCommand):
    help = "E-mail booking holders about events starting in roughly 48 hours. Run it hourly."

    def handle(self, *args, **options):
        sent = send_event_reminders()
        self.stdout.write(self.style.SUCCESS(f"Sent {sent} event reminders."))
