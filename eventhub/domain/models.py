"""Domain records for events and the actors that act on them.

These are plain values with no persistence or API concerns.
Tortoise models live in eventhub/db/models (persistence layer).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional, Tuple


class EventStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    DRAFT = "draft"


class EventCategory(str, Enum):
    TECHNOLOGY = "Technology"
    MUSIC = "Music"
    FOOD = "Food"
    SPORTS = "Sports"
    BUSINESS = "Business"
    EDUCATION = "Education"
    HEALTH_WELLNESS = "Health & Wellness"
    ARTS_CULTURE = "Arts & Culture"
    NETWORKING = "Networking"
    OTHER = "Other"


class UserRole(str, Enum):
    ATTENDEE = "attendee"
    ORGANIZER = "organizer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class EventDraft:
    """Input for a new event, before it has an id or capacity state."""

    title: str
    description: str
    category: EventCategory
    date: date
    time: time
    location: str
    ticket_limit: int
    price: float
    image: str = ""
    status: EventStatus = EventStatus.ACTIVE
    registration_deadline: Optional[datetime] = None
    max_attendees_per_user: int = 1
    tags: Tuple[str, ...] = ()
    featured: bool = False
    refund_policy: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    venue_details: Optional[str] = None
    requirements: Optional[str] = None


# Fields a client may change through an update. Capacity state and
# ownership are only ever changed by the rule engine.
MUTABLE_FIELDS = frozenset({
    "title",
    "description",
    "category",
    "date",
    "time",
    "location",
    "image",
    "ticket_limit",
    "price",
    "status",
    "registration_deadline",
    "max_attendees_per_user",
    "tags",
    "featured",
    "refund_policy",
    "contact_email",
    "contact_phone",
    "venue_details",
    "requirements",
})


@dataclass(frozen=True)
class EventRecord:
    """Persisted state of an event.

    The capacity invariant ``0 <= tickets_sold == len(attendees) <= ticket_limit``
    is checked on construction, so every record that exists is consistent.
    """

    id: int
    organizer_id: int
    title: str
    description: str
    category: EventCategory
    date: date
    time: time
    location: str
    ticket_limit: int
    price: float
    tickets_sold: int = 0
    attendees: FrozenSet[int] = frozenset()
    status: EventStatus = EventStatus.ACTIVE
    organizer_name: str = ""
    image: str = ""
    registration_deadline: Optional[datetime] = None
    max_attendees_per_user: int = 1
    tags: Tuple[str, ...] = ()
    featured: bool = False
    refund_policy: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    venue_details: Optional[str] = None
    requirements: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.ticket_limit < 1:
            raise ValueError("ticket_limit must be at least 1")
        if self.tickets_sold < 0:
            raise ValueError("tickets_sold cannot be negative")
        if self.tickets_sold > self.ticket_limit:
            raise ValueError("tickets_sold cannot exceed ticket_limit")
        if self.tickets_sold != len(self.attendees):
            raise ValueError("tickets_sold must equal the number of attendees")
        if self.price < 0:
            raise ValueError("price cannot be negative")
        if self.max_attendees_per_user < 1:
            raise ValueError("max_attendees_per_user must be at least 1")

    @property
    def available_tickets(self) -> int:
        return self.ticket_limit - self.tickets_sold

    @property
    def is_sold_out(self) -> bool:
        return self.tickets_sold >= self.ticket_limit

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        now = now or _utcnow()
        starts_at = datetime.combine(self.date, self.time)
        return _aware(starts_at) > _aware(now)

    def has_attendee(self, user_id: int) -> bool:
        return user_id in self.attendees

    def deadline_passed(self, now: Optional[datetime] = None) -> bool:
        if self.registration_deadline is None:
            return False
        now = now or _utcnow()
        return _aware(now) > _aware(self.registration_deadline)

    def with_attendee(self, user_id: int) -> "EventRecord":
        return replace(
            self,
            attendees=self.attendees | {user_id},
            tickets_sold=self.tickets_sold + 1,
        )

    def without_attendee(self, user_id: int) -> "EventRecord":
        return replace(
            self,
            attendees=self.attendees - {user_id},
            tickets_sold=max(0, self.tickets_sold - 1),
        )

    def with_changes(self, changes: Mapping[str, Any]) -> "EventRecord":
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        return replace(self, **changes)
