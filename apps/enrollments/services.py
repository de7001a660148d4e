import logging

from django.db import transaction
from django.db.models import ProtectedError

from apps.accounts.services import require_super_admin
from apps.classes.models import Class
from apps.common import workflow
from apps.common.exceptions import NotFoundError, ValidationError
from apps.enrollments.models import (
    Enrollment,
    EnrollmentSchedule,
    EnrollmentStatus,
    EnrollmentStatusLog,
    ScheduleType,
)
from apps.notifications import services as notification_services
from apps.notifications.models import NotificationKind

logger = logging.getLogger(__name__)


def class_price(klass: Class | None, schedule_type: str) -> int:
    if klass is None:
        return 0
    if schedule_type == ScheduleType.PRIVATE:
        price = klass.private_price
    else:
        price = klass.regular_price
    return max(int(price or 0), 0)


def enrollment_price(enrollment: Enrollment) -> int:
    """private_price when the enrollment has a schedule row, else regular_price; 0 without a class."""
    return class_price(enrollment.klass, enrollment.kind.schedule_type)


def clean_selected_days(klass: Class, selected_days) -> list[str]:
    days, invalid = [], []
    for day in selected_days or []:
        if not isinstance(day, str):
            invalid.append(str(day))
            continue
        day = day.strip()
        if day and day not in days:
            days.append(day)
    if not days and not invalid:
        raise ValidationError("Select at least one day for a private class.", code="no_days")
    available = list(klass.available_days or [])
    invalid += [day for day in days if day not in available]
    if invalid:
        raise ValidationError(
            f"{', '.join(invalid)} not available for {klass.title}. "
            f"Choose from: {', '.join(available) or 'none'}.",
            code="day_not_available",
        )
    return days


def create_enrollment(user, klass: Class | None, schedule_type: str, selected_days=None) -> Enrollment:
    if klass is None or not Class.objects.filter(pk=klass.pk, is_active=True).exists():
        raise NotFoundError("This class does not exist or is no longer open for enrollment.")
    if schedule_type not in ScheduleType.values:
        raise ValidationError(f"Unknown schedule type {schedule_type!r}.", code="invalid_schedule_type")

    days = None
    if schedule_type == ScheduleType.PRIVATE:
        days = clean_selected_days(klass, selected_days)

    with transaction.atomic():
        enrollment = Enrollment.objects.create(
            user=user,
            klass=klass,
            payment_status=EnrollmentStatus.PENDING,
        )
        if days is not None:
            EnrollmentSchedule.objects.create(enrollment=enrollment, selected_days=days)

    logger.info(
        "User %s enrolled in class %s (%s), enrollment #%s",
        user.pk,
        klass.pk,
        schedule_type,
        enrollment.pk,
    )
    return Enrollment.objects.select_related("klass", "schedule").get(pk=enrollment.pk)


def status_detail_line(enrollment: Enrollment, status: str) -> str:
    kind = enrollment.kind
    parts = [f"Type: {kind.label}", f"Schedule: {kind.schedule_label}"]
    if enrollment.klass and enrollment.klass.location:
        parts.append(f"Location: {enrollment.klass.location}")
    parts.append(f"Status: {status.upper()}")
    return " | ".join(parts)


def _notification_payload(enrollment: Enrollment, status: str) -> dict:
    klass = enrollment.klass
    return {
        "kind": NotificationKind.ENROLLMENT.value,
        "user_id": enrollment.user_id,
        "subject_line": klass.title if klass else "Class",
        "detail_line": status_detail_line(enrollment, status),
        "amount": enrollment_price(enrollment),
        "currency": klass.currency if klass else "",
        "status": status,
    }


def set_enrollment_status(
    enrollment: Enrollment,
    new_status: str,
    actor,
    *,
    expected_version: int | None = None,
    reason: str = "MANUAL",
    note: str = "",
) -> Enrollment:
    with transaction.atomic():
        change = workflow.change_status(
            enrollment,
            new_status,
            actor=actor,
            field="payment_status",
            states=EnrollmentStatus.values,
            expected_version=expected_version,
        )
        if change.changed:
            EnrollmentStatusLog.objects.create(
                enrollment=change.record,
                old_status=change.old_status,
                new_status=change.new_status,
                reason=reason,
                note=note,
                actor=actor,
            )
        if change.should_notify:
            workflow.after_commit(
                notification_services.notify, **_notification_payload(change.record, change.new_status)
            )
    return change.record


def confirm_enrollment(enrollment: Enrollment, actor, **kwargs) -> Enrollment:
    kwargs.setdefault("reason", "CONFIRM")
    return set_enrollment_status(enrollment, EnrollmentStatus.PAID, actor, **kwargs)


def delete_enrollment(enrollment: Enrollment, actor) -> None:
    require_super_admin(actor)
    pk = enrollment.pk
    try:
        enrollment.delete()
    except ProtectedError:
        raise ValidationError(
            "This enrollment has mobile payment records and cannot be removed.",
            code="has_payments",
        )
    logger.info("Enrollment #%s deleted by %s", pk, actor)
