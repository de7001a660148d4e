import apps.events.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                ("venue_address", models.CharField(blank=True, max_length=255)),
                ("is_paid", models.BooleanField(default=False)),
                ("price", models.PositiveIntegerField(blank=True, null=True)),
                ("currency", models.CharField(default=apps.events.models._default_currency, max_length=3)),
                ("capacity", models.PositiveIntegerField(default=50)),
                (
                    "status",
                    models.CharField(
                        choices=[("upcoming", "Upcoming"), ("completed", "Completed"), ("canceled", "Canceled")],
                        default="upcoming",
                        max_length=20,
                    ),
                ),
            ],
            options={
                "ordering": ["start_time"],
                "indexes": [
                    models.Index(fields=["start_time"], name="events_start_time_idx"),
                    models.Index(fields=["status"], name="events_status_idx"),
                ],
            },
        ),
    ]
