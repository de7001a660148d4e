from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    SUPER_ADMIN = "super_admin", "Super admin"
    EDITOR = "editor", "Editor"
    STUDENT = "student", "Student"


ADMIN_ROLES = {UserRole.SUPER_ADMIN.value, UserRole.EDITOR.value}


class User(AbstractUser):
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.STUDENT)
    phone = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = "accounts_user"
        indexes = [
            models.Index(fields=["role"], name="accounts_user_role_idx"),
        ]

    def __str__(self):
        return f"{self.username} ({self.role})"

    def preferred_first_name(self) -> str:
        return (self.first_name or "").strip() or self.username or "Dancer"

    def preferred_email(self) -> str:
        """Return the user's email or an empty string when missing."""
        return (self.email or "").strip()
