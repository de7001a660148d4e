from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from django.conf import settings
from django.db import transaction

from apps.accounts.services import require_admin
from apps.common.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    StaleRecordError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
PAID = "paid"
CANCELED = "canceled"
REFUNDED = "refunded"

# canceled and refunded are terminal
TRANSITIONS: dict[str, set[str]] = {
    PENDING: {CONFIRMED, PAID, CANCELED},
    CONFIRMED: {PAID, REFUNDED, CANCELED},
    PAID: {REFUNDED, CANCELED},
    CANCELED: set(),
    REFUNDED: set(),
}


@dataclass
class StatusChange:
    record: Any
    old_status: str
    new_status: str
    changed: bool

    @property
    def should_notify(self) -> bool:
        return self.changed or getattr(settings, "WORKFLOW_NOTIFY_ON_UNCHANGED_STATUS", False)


def allowed_transitions(current: str, states: Iterable[str]) -> set[str]:
    states = set(states)
    if getattr(settings, "WORKFLOW_ALLOW_ANY_TRANSITION", False):
        return states - {current}
    return TRANSITIONS.get(current, set()) & states


def check_transition(current: str, new: str, states: Iterable[str]) -> bool:
    """
    Validate ``current -> new`` against the transition table.
    Returns False when ``new`` equals ``current`` (nothing to write).
    """
    states = [str(state) for state in states]
    new = str(new)
    if new not in states:
        raise ValidationError(
            f"Unknown status {new!r}. Expected one of: {', '.join(states)}.",
            code="invalid_status",
        )
    if new == current:
        return False
    if new not in allowed_transitions(current, states):
        raise InvalidTransitionError(current, new)
    return True


def change_status(
    record,
    new_status: str,
    *,
    actor,
    field: str,
    states: Iterable[str],
    expected_version: int | None = None,
) -> StatusChange:
    """
    Lock ``record``, validate the transition and persist the new status.
    Must run inside ``transaction.atomic()`` so the row lock is held until the
    caller's follow-up writes (status log, on_commit hooks) are done.
    """
    require_admin(actor)
    new_status = str(new_status)
    model = type(record)
    try:
        locked = model.objects.select_for_update().get(pk=record.pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{model._meta.verbose_name} #{record.pk} does not exist.")

    if expected_version is not None and locked.version != int(expected_version):
        raise StaleRecordError(locked, expected_version)

    old_status = getattr(locked, field)
    changed = check_transition(old_status, new_status, states)
    if changed:
        setattr(locked, field, new_status)
        locked.version += 1
        locked.save(update_fields=[field, "version", "updated_at"])
        logger.info(
            "%s #%s status %s -> %s by %s",
            model.__name__,
            locked.pk,
            old_status,
            new_status,
            actor,
        )
    return StatusChange(record=locked, old_status=old_status, new_status=new_status, changed=changed)


def after_commit(func, *args, **kwargs) -> None:
    transaction.on_commit(lambda: func(*args, **kwargs))
