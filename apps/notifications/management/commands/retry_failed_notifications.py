from django.core.management.base import BaseCommand

from apps.notifications.services import retry_failed


class Command(BaseCommand):
    help = "Re-send status e-mails whose first delivery attempt failed."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=100)

    def handle(self, *args, **options):
        sent, failed = retry_failed(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(f"Re-sent {sent} notifications, {failed} still failing."))
