"""Capacity and registration rules.

Pure decision functions: they take records, return new records or raise a
DomainError. Nothing here touches storage, so callers are responsible for
running a check and the following write as one atomic unit.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional

from eventhub.domain.errors import (
    AlreadyRegisteredError,
    DeadlinePassedError,
    EventNotActiveError,
    ForbiddenError,
    NotRegisteredError,
    OrganizerCannotRegisterError,
    RoleNotPermittedError,
    SoldOutError,
    ValidationError,
)
from eventhub.domain.models import (
    Actor,
    EventCategory,
    EventDraft,
    EventRecord,
    EventStatus,
    UserRole,
)

REQUIRED_TEXT_FIELDS = ("title", "description", "location")


def try_register(event: EventRecord, user_id: int, now: Optional[datetime] = None) -> EventRecord:
    """Return ``event`` with ``user_id`` registered.

    The first failing check decides the error.
    """
    if user_id == event.organizer_id:
        raise OrganizerCannotRegisterError()
    if event.status != EventStatus.ACTIVE:
        raise EventNotActiveError()
    if event.tickets_sold >= event.ticket_limit:
        raise SoldOutError()
    if event.has_attendee(user_id):
        raise AlreadyRegisteredError()
    if event.deadline_passed(now):
        raise DeadlinePassedError()

    return event.with_attendee(user_id)


def try_unregister(event: EventRecord, user_id: int) -> EventRecord:
    """Return ``event`` with ``user_id`` removed. Allowed in any status."""
    if not event.has_attendee(user_id):
        raise NotRegisteredError()

    return event.without_attendee(user_id)


def _check_fields(values: Mapping[str, Any]) -> dict:
    errors = {}

    for name in REQUIRED_TEXT_FIELDS:
        if name in values and not (values[name] or "").strip():
            errors[name] = f"{name.capitalize()} is required"

    if "ticket_limit" in values and (values["ticket_limit"] is None or values["ticket_limit"] < 1):
        errors["ticket_limit"] = "Ticket limit must be at least 1"

    if "price" in values and (values["price"] is None or values["price"] < 0):
        errors["price"] = "Price cannot be negative"

    if "category" in values:
        try:
            EventCategory(values["category"])
        except ValueError:
            errors["category"] = f"Unknown category: {values['category']}"

    if "status" in values:
        try:
            EventStatus(values["status"])
        except ValueError:
            errors["status"] = f"Unknown status: {values['status']}"

    if "max_attendees_per_user" in values and (
        values["max_attendees_per_user"] is None or values["max_attendees_per_user"] < 1
    ):
        errors["max_attendees_per_user"] = "Max attendees per user must be at least 1"

    return errors


def validate_creation(draft: EventDraft) -> EventDraft:
    """Validate a new event and normalise its initial status.

    A date in the past is accepted here.
    """
    errors = _check_fields(vars(draft))
    if errors:
        raise ValidationError("Invalid event data", field_errors=errors)

    status = EventStatus.DRAFT if draft.status == EventStatus.DRAFT else EventStatus.ACTIVE
    return replace(draft, category=EventCategory(draft.category), status=status)


def validate_update(event: EventRecord, changes: Mapping[str, Any]) -> EventRecord:
    """Apply a partial update to ``event`` and return the result."""
    errors = _check_fields(changes)

    new_limit = changes.get("ticket_limit")
    if new_limit is not None and "ticket_limit" not in errors and new_limit < event.tickets_sold:
        errors["ticket_limit"] = (
            f"Ticket limit cannot be lower than tickets already sold ({event.tickets_sold})"
        )

    if errors:
        raise ValidationError("Invalid event data", field_errors=errors)

    normalized = dict(changes)
    if "category" in normalized:
        normalized["category"] = EventCategory(normalized["category"])
    if "status" in normalized:
        normalized["status"] = EventStatus(normalized["status"])
    if "tags" in normalized:
        normalized["tags"] = tuple(normalized["tags"] or ())

    try:
        return event.with_changes(normalized)
    except ValueError as e:
        raise ValidationError(str(e))


def authorize_mutation(event: EventRecord, actor: Actor) -> None:
    """Only the organizer or an admin may change or delete an event."""
    if actor.id == event.organizer_id or actor.role == UserRole.ADMIN:
        return
    raise ForbiddenError()


def require_role(actor: Actor, *roles: UserRole) -> None:
    if actor.role not in roles:
        raise RoleNotPermittedError(
            f"User role {actor.role.value} is not authorized to access this route"
        )
