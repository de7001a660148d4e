from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

__all__ = [
    "AlreadyBookedError",
    "InvalidTransitionError",
    "NotFoundError",
    "PermissionDenied",
    "StaleRecordError",
    "UnsupportedProviderError",
    "ValidationError",
]


class AlreadyBookedError(ValidationError):
    """A booking already exists for this user and event."""

    def __init__(self, message="You have already booked this event.", **kwargs):
        super().__init__(message, code="already_booked", **kwargs)


class InvalidTransitionError(ValidationError):
    def __init__(self, old_status, new_status):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(
            f"Cannot change status from {old_status} to {new_status}.",
            code="invalid_transition",
        )


class UnsupportedProviderError(ValidationError):
    def __init__(self, provider):
        self.provider = provider
        super().__init__(
            f"Unsupported mobile money provider: {provider!r}.",
            code="unsupported_provider",
        )


class StaleRecordError(Exception):
    """The record changed since the caller last read it."""

    def __init__(self, record, expected_version):
        self.record = record
        self.expected_version = expected_version
        super().__init__(
            f"{record._meta.verbose_name} #{record.pk} was modified by someone else "
            f"(expected version {expected_version})."
        )


class NotFoundError(ObjectDoesNotExist):
    pass
