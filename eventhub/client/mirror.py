"""
Локальное зеркало событий на стороне клиента.

Хранит копию данных сервера для отображения. После каждой успешной
мутации запись заменяется ответом сервера целиком во всех коллекциях,
поэтому tickets_sold и attendees всегда приходят одной парой.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from eventhub.client.api import ApiError, EventHubClient

logger = logging.getLogger(__name__)

Event = Dict[str, Any]

DEFAULT_FILTERS: Dict[str, Any] = {
    "category": None,
    "date": None,
    "location": None,
    "search": None,
    "status": "active",
    "featured": None,
    "sort": "date",
}


@dataclass
class Pagination:
    current_page: int = 1
    total_pages: int = 0
    total: int = 0
    limit: int = 10


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EventMirror:
    """Состояние списка событий, текущего события и событий пользователя"""

    def __init__(self, client: EventHubClient):
        self.client = client
        self.events: List[Event] = []
        self.current_event: Optional[Event] = None
        self.user_events: List[Event] = []
        self.pagination = Pagination()
        self.filters: Dict[str, Any] = dict(DEFAULT_FILTERS)
        self.loading = False
        self.error: Optional[str] = None

    @property
    def current_user_id(self) -> Optional[int]:
        return self.client.user_id

    @asynccontextmanager
    async def _request(self) -> AsyncIterator[None]:
        self.loading = True
        self.error = None
        try:
            yield
        except ApiError as e:
            # Отклоненная мутация всегда видна пользователю
            self.error = e.message
            logger.info("Request rejected: %s", e)
            raise
        finally:
            self.loading = False

    # Фильтры

    def set_filters(self, **filters: Any) -> None:
        self.filters.update(filters)

    def clear_filters(self) -> None:
        self.filters = dict(DEFAULT_FILTERS)

    def clear_error(self) -> None:
        self.error = None

    def clear_current_event(self) -> None:
        self.current_event = None

    # Загрузка

    async def fetch_events(self, page: int = 1, limit: Optional[int] = None) -> List[Event]:
        """Загружает страницу событий с текущими фильтрами."""
        async with self._request():
            body = await self.client.list_events(
                page=page,
                limit=limit or self.pagination.limit,
                **self.filters,
            )

        self.events = body["data"]
        self.pagination = Pagination(
            current_page=body["current_page"],
            total_pages=body["total_pages"],
            total=body["total"],
            limit=body.get("limit", self.pagination.limit),
        )
        return self.events

    async def fetch_event(self, event_id: int) -> Event:
        async with self._request():
            self.current_event = await self.client.get_event(event_id)
        return self.current_event

    async def fetch_user_events(self, type: str = "all") -> List[Event]:
        async with self._request():
            self.user_events = await self.client.get_user_events(type)
        return self.user_events

    # Изменения

    async def create_event(self, event_data: Dict[str, Any]) -> Event:
        async with self._request():
            event = await self.client.create_event(event_data)
        self.events.insert(0, event)
        return event

    async def update_event(self, event_id: int, changes: Dict[str, Any]) -> Event:
        async with self._request():
            event = await self.client.update_event(event_id, changes)
        self._replace(event)
        return event

    async def delete_event(self, event_id: int) -> None:
        async with self._request():
            await self.client.delete_event(event_id)
        self._remove(event_id)

    async def register_for_event(self, event_id: int) -> Event:
        async with self._request():
            event = await self.client.register_for_event(event_id)
        self._replace(event)
        return event

    async def unregister_from_event(self, event_id: int) -> Event:
        async with self._request():
            event = await self.client.unregister_from_event(event_id)
        self._replace(event)
        return event

    def _replace(self, updated: Event) -> None:
        # Заменяем запись целиком, без слияния полей
        self.events = [updated if event["id"] == updated["id"] else event for event in self.events]
        self.user_events = [updated if event["id"] == updated["id"] else event for event in self.user_events]
        if self.current_event is not None and self.current_event["id"] == updated["id"]:
            self.current_event = updated

    def _remove(self, event_id: int) -> None:
        self.events = [event for event in self.events if event["id"] != event_id]
        self.user_events = [event for event in self.user_events if event["id"] != event_id]
        if self.current_event is not None and self.current_event["id"] == event_id:
            self.current_event = None

    # Флаги для текущего пользователя

    def is_registered(self, event: Event) -> bool:
        user_id = self.current_user_id
        if user_id is None:
            return False
        return any(attendee["id"] == user_id for attendee in event.get("attendees", []))

    def can_register(self, event: Event, now: Optional[datetime] = None) -> bool:
        """
        Подсказка для интерфейса: можно ли показать кнопку регистрации.

        Решение принимает только сервер.
        """
        user_id = self.current_user_id
        if user_id is None:
            return False
        if event["organizer"]["id"] == user_id:
            return False
        if event["status"] != "active":
            return False
        if event["tickets_sold"] >= event["ticket_limit"]:
            return False
        if self.is_registered(event):
            return False

        deadline = event.get("registration_deadline")
        if deadline:
            now = now or datetime.now(timezone.utc)
            if now > _parse_datetime(deadline):
                return False

        return True
