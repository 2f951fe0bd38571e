"""
Хранилище событий на Tortoise ORM.

Преобразует строки БД в доменные записи EventRecord и гарантирует
атомарность регистрации в пределах одного события.
"""

import asyncio
import functools
import logging
import weakref
from typing import Any, Awaitable, Callable, List, Optional

from fastapi_pagination.ext.tortoise import paginate as tortoise_paginate
from tortoise import timezone
from tortoise.exceptions import DBConnectionError, IntegrityError, OperationalError
from tortoise.expressions import Q
from tortoise.queryset import QuerySet
from tortoise.transactions import in_transaction

from eventhub.db.models import Event, User
from eventhub.domain import EventDraft, EventRecord
from eventhub.domain.errors import (
    ConcurrencyConflictError,
    EventNotFoundError,
    StoreUnavailableError,
)
from eventhub.domain.models import MUTABLE_FIELDS
from eventhub.stores.interfaces import (
    EventDecision,
    EventFilter,
    EventStore,
    RecordsTransformer,
)

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "date": ("date", "time"),
    "date-desc": ("-date", "-time"),
    "price": ("price", "date"),
    "price-desc": ("-price", "date"),
    "created": ("-created_at",),
}


def translate_store_errors(func):
    """Оборачивает ошибки инфраструктуры БД в StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except IntegrityError:
            raise
        except (DBConnectionError, OperationalError) as e:
            logger.error("Event store failure in %s: %s", func.__name__, e)
            raise StoreUnavailableError() from e

    return wrapper


def to_record(event: Event, attendee_ids) -> EventRecord:
    """Собирает доменную запись из строки БД и списка участников."""
    return EventRecord(
        id=event.id,
        organizer_id=event.organizer_id,
        organizer_name=event.organizer_name,
        title=event.title,
        description=event.description,
        category=event.category,
        date=event.date,
        time=event.time,
        location=event.location,
        image=event.image,
        ticket_limit=event.ticket_limit,
        tickets_sold=event.tickets_sold,
        price=event.price,
        attendees=frozenset(attendee_ids),
        status=event.status,
        registration_deadline=event.registration_deadline,
        max_attendees_per_user=event.max_attendees_per_user,
        tags=tuple(event.tags or ()),
        featured=event.featured,
        refund_policy=event.refund_policy,
        contact_email=event.contact_email,
        contact_phone=event.contact_phone,
        venue_details=event.venue_details,
        requirements=event.requirements,
        created_at=event.created_at,
        updated_at=event.updated_at,
    )


def _db_value(name: str, value):
    if name == "tags":
        return list(value or ())
    return value


class TortoiseEventStore(EventStore):
    """Хранилище событий поверх Tortoise ORM (PostgreSQL / SQLite)."""

    def __init__(self, max_attempts: int = 3):
        self._max_attempts = max_attempts
        # Блокировки по id события; запись живет, пока блокировка используется
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, event_id: int) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[event_id] = lock
        return lock

    async def _load(self, event_id: int, connection=None) -> Optional[EventRecord]:
        query = Event.filter(id=event_id)
        if connection is not None:
            query = query.using_db(connection)
        event = await query.first()
        if event is None:
            return None

        attendees = User.filter(attended_events__id=event_id)
        if connection is not None:
            attendees = attendees.using_db(connection)
        attendee_ids = await attendees.values_list("id", flat=True)
        return to_record(event, attendee_ids)

    @translate_store_errors
    async def find_by_id(self, event_id: int) -> Optional[EventRecord]:
        return await self._load(event_id)

    @translate_store_errors
    async def create(self, draft: EventDraft, organizer_id: int, organizer_name: str) -> EventRecord:
        values = {name: _db_value(name, value) for name, value in vars(draft).items()}
        event = await Event.create(
            **values,
            organizer_id=organizer_id,
            organizer_name=organizer_name,
            tickets_sold=0,
        )
        return to_record(event, ())

    @translate_store_errors
    async def delete(self, event_id: int) -> None:
        deleted = await Event.filter(id=event_id).delete()
        if not deleted:
            raise EventNotFoundError()

    @staticmethod
    def _filtered(filters: EventFilter) -> QuerySet:
        query = Event.all()

        # Фильтры
        if filters.status is not None:
            query = query.filter(status=filters.status)

        if filters.category:
            query = query.filter(category=filters.category)

        if filters.location:
            query = query.filter(location__icontains=filters.location)

        if filters.search:
            search_term = filters.search.strip()
            query = query.filter(
                Q(title__icontains=search_term) |
                Q(description__icontains=search_term) |
                Q(location__icontains=search_term)
            )

        if filters.date is not None:
            query = query.filter(date=filters.date)

        if filters.featured is not None:
            query = query.filter(featured=filters.featured)

        return query

    @translate_store_errors
    async def find_many(
        self,
        filters: EventFilter,
        sort: str = "date",
        transformer: Optional[RecordsTransformer] = None,
    ) -> Any:
        query = self._filtered(filters).order_by(*SORT_FIELDS.get(sort, SORT_FIELDS["date"]))

        async def to_items(events: List[Event]):
            records = [to_record(event, [user.id for user in event.attendees]) for event in events]
            if transformer is None:
                return records
            return await transformer(records)

        return await tortoise_paginate(query, prefetch_related=["attendees"], transformer=to_items)

    @translate_store_errors
    async def find_for_user(self, user_id: int, kind: str = "all") -> List[EventRecord]:
        if kind == "created":
            query = Event.filter(organizer_id=user_id)
        elif kind == "registered":
            # Собственные события пользователя не попадают в "registered"
            query = Event.filter(attendees__id=user_id).exclude(organizer_id=user_id)
        else:
            query = Event.filter(Q(organizer_id=user_id) | Q(attendees__id=user_id)).distinct()

        events = await query.order_by("date", "time").prefetch_related("attendees")
        return [to_record(event, [user.id for user in event.attendees]) for event in events]

    @translate_store_errors
    async def apply_update(self, event_id: int, decide: EventDecision) -> EventRecord:
        return await self._apply(event_id, decide, self._write_fields)

    @translate_store_errors
    async def apply_registration(self, event_id: int, decide: EventDecision) -> EventRecord:
        return await self._apply(event_id, decide, self._write_capacity)

    async def _apply(
        self,
        event_id: int,
        decide: EventDecision,
        write: Callable[[QuerySet, EventRecord, EventRecord, Any], Awaitable[Optional[EventRecord]]],
    ) -> EventRecord:
        """
        Читает событие, принимает решение и записывает результат под блокировкой события.

        Запись условная: строка обновляется, только если tickets_sold не менялся
        с момента чтения. При промахе запись перечитывается, не более max_attempts раз.
        """
        async with self._lock_for(event_id):
            for attempt in range(1, self._max_attempts + 1):
                async with in_transaction() as connection:
                    current = await self._load(event_id, connection)
                    if current is None:
                        raise EventNotFoundError()

                    updated = decide(current)

                    guarded = Event.filter(
                        id=event_id,
                        tickets_sold=current.tickets_sold,
                    ).using_db(connection)

                    saved = await write(guarded, current, updated, connection)
                    if saved is not None:
                        return saved

                logger.warning(
                    "Write guard miss on event %s (attempt %s/%s)",
                    event_id, attempt, self._max_attempts,
                )

            raise ConcurrencyConflictError()

    async def _write_capacity(self, guarded: QuerySet, current: EventRecord, updated: EventRecord, connection):
        changed = await guarded.update(tickets_sold=updated.tickets_sold)
        if not changed:
            return None

        await self._sync_attendees(current.id, current, updated, connection)
        return updated

    async def _write_fields(self, guarded: QuerySet, current: EventRecord, updated: EventRecord, connection):
        # Пишем только измененные поля, остальные остаются как в БД
        values = {
            name: _db_value(name, getattr(updated, name))
            for name in MUTABLE_FIELDS
            if getattr(updated, name) != getattr(current, name)
        }
        if values:
            changed = await guarded.update(**values, updated_at=timezone.now())
            if not changed:
                return None

        return await self._load(current.id, connection)

    async def _sync_attendees(self, event_id: int, current: EventRecord, updated: EventRecord, connection) -> None:
        event = await Event.filter(id=event_id).using_db(connection).first()

        added = updated.attendees - current.attendees
        if added:
            users = await User.filter(id__in=added).using_db(connection)
            await event.attendees.add(*users, using_db=connection)

        removed = current.attendees - updated.attendees
        if removed:
            users = await User.filter(id__in=removed).using_db(connection)
            await event.attendees.remove(*users, using_db=connection)
