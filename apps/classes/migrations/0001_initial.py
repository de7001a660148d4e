import apps.classes.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Class",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=255)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("salsa", "Salsa"),
                            ("bachata", "Bachata"),
                            ("kizomba", "Kizomba"),
                            ("konpa", "Konpa"),
                            ("semba", "Semba"),
                            ("zouk", "Zouk"),
                        ],
                        max_length=20,
                    ),
                ),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                (
                    "schedule",
                    models.CharField(blank=True, help_text="Human readable schedule, e.g. 'Mondays 18:00'", max_length=255),
                ),
                ("regular_price", models.PositiveIntegerField(blank=True, null=True)),
                ("private_price", models.PositiveIntegerField(blank=True, null=True)),
                ("currency", models.CharField(default=apps.classes.models._default_currency, max_length=3)),
                ("fixed_days", models.JSONField(blank=True, default=list)),
                ("available_days", models.JSONField(blank=True, default=list)),
                ("capacity", models.PositiveIntegerField(default=20)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name_plural": "classes",
                "ordering": ["title"],
                "indexes": [
                    models.Index(fields=["category"], name="classes_category_idx"),
                    models.Index(fields=["is_active"], name="classes_active_idx"),
                ],
            },
        ),
    ]
