from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from apps.common.models import TimeStampedModel, Weekday


class ClassCategory(models.TextChoices):
    SALSA = "salsa", "Salsa"
    BACHATA = "bachata", "Bachata"
    KIZOMBA = "kizomba", "Kizomba"
    KONPA = "konpa", "Konpa"
    SEMBA = "semba", "Semba"
    ZOUK = "zouk", "Zouk"


def _default_currency():
    return settings.DEFAULT_CURRENCY


class Class(TimeStampedModel):
    """
    A recurring dance class.
    Regular students follow ``fixed_days`` at ``regular_price``; private students
    pick their own days out of ``available_days`` and pay ``private_price``.
    """

    title = models.CharField(max_length=255)
    category = models.CharField(max_length=20, choices=ClassCategory.choices)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    schedule = models.CharField(max_length=255, blank=True, help_text="Human readable schedule, e.g. 'Mondays 18:00'")
    regular_price = models.PositiveIntegerField(null=True, blank=True)
    private_price = models.PositiveIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=3, default=_default_currency)
    fixed_days = models.JSONField(default=list, blank=True)
    available_days = models.JSONField(default=list, blank=True)
    capacity = models.PositiveIntegerField(default=20)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "classes"
        ordering = ["title"]
        indexes = [
            models.Index(fields=["category"], name="classes_category_idx"),
            models.Index(fields=["is_active"], name="classes_active_idx"),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        valid = set(Weekday.values)
        errors = {}
        for field in ("fixed_days", "available_days"):
            unknown = [day for day in getattr(self, field) or [] if day not in valid]
            if unknown:
                errors[field] = f"Unknown weekday(s): {', '.join(map(str, unknown))}"
        if errors:
            raise ValidationError(errors)
