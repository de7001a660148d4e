from django.db import models


class ContactMessage(models.Model):
    """A message left through the public contact form."""

    name = models.CharField(max_length=150)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    admin_notified = models.BooleanField(default=False)
    sender_acknowledged = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_read"], name="contact_is_read_idx"),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"
