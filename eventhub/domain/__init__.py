from eventhub.domain.models import (
    Actor,
    EventCategory,
    EventDraft,
    EventRecord,
    EventStatus,
    UserRole,
)
from eventhub.domain.errors import DomainError, ErrorCode

__all__ = [
    "Actor",
    "DomainError",
    "ErrorCode",
    "EventCategory",
    "EventDraft",
    "EventRecord",
    "EventStatus",
    "UserRole",
]
