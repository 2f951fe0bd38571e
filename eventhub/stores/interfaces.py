"""
Интерфейсы хранилищ (паттерн репозиторий).

Хранилища взаимозаменяемы и возвращают доменные записи, а не строки ORM.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from eventhub.domain import EventCategory, EventDraft, EventRecord, EventStatus

SORT_OPTIONS = ("date", "date-desc", "price", "price-desc", "created")
USER_EVENT_TYPES = ("all", "created", "registered")

# Получает текущую запись, возвращает новую или бросает DomainError
EventDecision = Callable[[EventRecord], EventRecord]
RecordsTransformer = Callable[[List[EventRecord]], Awaitable[Sequence[Any]]]


@dataclass(frozen=True)
class EventFilter:
    status: Optional[EventStatus] = EventStatus.ACTIVE
    category: Optional[EventCategory] = None
    location: Optional[str] = None
    search: Optional[str] = None
    date: Optional[date] = None
    featured: Optional[bool] = None


class EventStore(ABC):
    """Интерфейс хранения событий"""

    @abstractmethod
    async def find_by_id(self, event_id: int) -> Optional[EventRecord]:
        """Событие по ID или None."""
        ...

    @abstractmethod
    async def create(self, draft: EventDraft, organizer_id: int, organizer_name: str) -> EventRecord:
        """Сохраняет проверенный черновик с пустым состоянием билетов."""
        ...

    @abstractmethod
    async def delete(self, event_id: int) -> None:
        ...

    @abstractmethod
    async def find_many(
        self,
        filters: EventFilter,
        sort: str = "date",
        transformer: Optional[RecordsTransformer] = None,
    ) -> Any:
        """
        Страница событий по фильтрам.

        Параметры страницы и тип ответа берутся из контекста пагинации
        текущего запроса. transformer превращает записи страницы в элементы ответа.
        """
        ...

    @abstractmethod
    async def find_for_user(self, user_id: int, kind: str = "all") -> List[EventRecord]:
        """События, созданные пользователем, посещаемые им или все вместе, по дате."""
        ...

    @abstractmethod
    async def apply_update(self, event_id: int, decide: EventDecision) -> EventRecord:
        """
        Атомарно читает событие, применяет decide и сохраняет описательные поля.

        Состояние билетов (tickets_sold, attendees) здесь не записывается.
        """
        ...

    @abstractmethod
    async def apply_registration(self, event_id: int, decide: EventDecision) -> EventRecord:
        """
        Атомарно читает событие, применяет decide и сохраняет состояние билетов.

        Если decide бросает DomainError, ничего не записывается.
        """
        ...
