# eventhub/api/schemas.py
import math
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from datetime import datetime
from datetime import date as date_type, time as time_type
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from fastapi import Query
from fastapi_pagination.bases import AbstractPage, AbstractParams, RawParams

from eventhub.config import settings
from eventhub.domain import EventCategory, EventRecord, EventStatus, UserRole

T = TypeVar("T")

# Поля события, которые можно сбросить явным null
NULLABLE_EVENT_FIELDS = frozenset({
    "registration_deadline",
    "refund_policy",
    "contact_email",
    "contact_phone",
    "venue_details",
    "requirements",
})


def _validate_password_strength(v: str) -> str:
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters long')
    if not any(c.isdigit() for c in v):
        raise ValueError('Password must contain at least one digit')
    if not any(c.isalpha() for c in v):
        raise ValueError('Password must contain at least one letter')
    return v


# Envelope
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ListParams(BaseModel, AbstractParams):
    """Параметры страницы списка: ?page=1&limit=10"""

    page: int = Query(1, ge=1, description="Page number")
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size")

    def to_raw_params(self) -> RawParams:
        return RawParams(limit=self.limit, offset=(self.page - 1) * self.limit)


class ListPage(AbstractPage[T], Generic[T]):
    """Страница списка в общем конверте ответа."""

    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    limit: int
    data: List[T]

    __params_type__ = ListParams

    @classmethod
    def create(
            cls,
            items: Sequence[T],
            params: AbstractParams,
            *,
            total: Optional[int] = None,
            **kwargs: Any,
    ) -> "ListPage[T]":
        if not isinstance(params, ListParams):
            raise TypeError(f"ListPage expects ListParams, got {type(params).__name__}")

        total = total or 0
        return cls(
            count=len(items),
            total=total,
            total_pages=math.ceil(total / params.limit),
            current_page=params.page,
            limit=params.limit,
            data=list(items),
            **kwargs,
        )


# User schemas
class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    avatar: str = ""


class UserResponse(UserSummary):
    role: UserRole
    bio: str = ""
    phone: str = ""
    is_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.ATTENDEE

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    avatar: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=30)


class AdminUserUpdate(ProfileUpdate):
    role: Optional[UserRole] = None
    is_verified: Optional[bool] = None


class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=6)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _validate_password_strength(v)


class TokenData(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserStats(BaseModel):
    total_users: int
    attendees: int
    organizers: int
    admins: int
    verified_users: int
    recent_users: int


# Event schemas
class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    category: EventCategory
    date: date_type
    time: time_type
    location: str = Field(..., min_length=1, max_length=200)
    image: str = Field("", max_length=500)
    ticket_limit: int = Field(..., ge=1)
    price: float = Field(0, ge=0)
    status: EventStatus = EventStatus.ACTIVE
    registration_deadline: Optional[datetime] = None
    max_attendees_per_user: int = Field(1, ge=1)
    tags: List[str] = Field(default_factory=list)
    featured: bool = False
    refund_policy: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    venue_details: Optional[str] = None
    requirements: Optional[str] = None


class EventUpdate(BaseModel):
    # Пустые строки пропускаем до доменной валидации, она вернет 400
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    category: Optional[EventCategory] = None
    date: Optional[date_type] = None  # Используем date_type
    time: Optional[time_type] = None  # Используем time_type
    location: Optional[str] = Field(None, max_length=200)
    image: Optional[str] = Field(None, max_length=500)
    # Те же границы, что и при создании; лимит ниже проданных билетов проверяет домен
    ticket_limit: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    status: Optional[EventStatus] = None
    registration_deadline: Optional[datetime] = None
    max_attendees_per_user: Optional[int] = Field(None, ge=1)
    tags: Optional[List[str]] = None
    featured: Optional[bool] = None
    refund_policy: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    venue_details: Optional[str] = None
    requirements: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Только переданные клиентом поля, без null для обязательных."""
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name in NULLABLE_EVENT_FIELDS
        }


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    category: EventCategory
    date: date_type
    time: time_type
    location: str
    image: str
    ticket_limit: int
    tickets_sold: int
    available_tickets: int
    is_sold_out: bool
    is_upcoming: bool
    price: float
    organizer: UserSummary
    organizer_name: str
    attendees: List[UserSummary]
    status: EventStatus
    registration_deadline: Optional[datetime] = None
    max_attendees_per_user: int
    tags: List[str]
    featured: bool
    refund_policy: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    venue_details: Optional[str] = None
    requirements: Optional[str] = None
    is_registered: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(
            cls,
            record: EventRecord,
            people: Mapping[int, Any],
            viewer_id: Optional[int] = None,
    ) -> "EventResponse":
        """Собирает ответ из доменной записи и загруженных пользователей."""
        organizer = people.get(record.organizer_id)
        if organizer is not None:
            organizer_summary = UserSummary.model_validate(organizer)
        else:
            # Организатор удален, оставляем сохраненное имя
            organizer_summary = UserSummary.model_construct(
                id=record.organizer_id, name=record.organizer_name, email="", avatar=""
            )

        attendees = [
            UserSummary.model_validate(people[user_id])
            for user_id in sorted(record.attendees)
            if user_id in people
        ]

        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            category=record.category,
            date=record.date,
            time=record.time,
            location=record.location,
            image=record.image,
            ticket_limit=record.ticket_limit,
            tickets_sold=record.tickets_sold,
            available_tickets=record.available_tickets,
            is_sold_out=record.is_sold_out,
            is_upcoming=record.is_upcoming(),
            price=record.price,
            organizer=organizer_summary,
            organizer_name=record.organizer_name,
            attendees=attendees,
            status=record.status,
            registration_deadline=record.registration_deadline,
            max_attendees_per_user=record.max_attendees_per_user,
            tags=list(record.tags),
            featured=record.featured,
            refund_policy=record.refund_policy,
            contact_email=record.contact_email,
            contact_phone=record.contact_phone,
            venue_details=record.venue_details,
            requirements=record.requirements,
            is_registered=viewer_id is not None and record.has_attendee(viewer_id),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

