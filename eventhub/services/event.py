# eventhub/services/event.py
"""
Сервис для работы с событиями.
Содержит бизнес-логику создания, обновления, удаления событий
и регистрации участников. Хранилище передается явно при создании сервиса.
"""

import logging
from functools import partial
from typing import Any, Dict, Iterable, List, Mapping, Optional

from eventhub.db.models import User
from eventhub.domain import Actor, EventDraft, EventRecord, UserRole
from eventhub.domain.errors import EventNotFoundError, ValidationError
from eventhub.domain.rules import (
    authorize_mutation,
    require_role,
    try_register,
    try_unregister,
    validate_creation,
    validate_update,
)
from eventhub.stores import EventFilter, EventStore
from eventhub.stores.interfaces import USER_EVENT_TYPES, RecordsTransformer

logger = logging.getLogger(__name__)


def actor_for(user: User) -> Actor:
    """Создает доменного актора из пользователя БД."""
    return Actor(id=user.id, role=UserRole(user.role))


class EventService:
    """Сервис событий"""

    def __init__(self, store: EventStore):
        self.store = store

    async def get_event(self, event_id: int) -> EventRecord:
        """
        Получает событие по ID.

        Args:
            event_id: ID события

        Returns:
            EventRecord: Событие

        Raises:
            EventNotFoundError: Если событие не найдено
        """
        event = await self.store.find_by_id(event_id)
        if event is None:
            raise EventNotFoundError()
        return event

    async def list_events(
            self,
            filters: EventFilter,
            sort: str = "date",
            transformer: Optional[RecordsTransformer] = None,
    ) -> Any:
        """
        Получает страницу событий с применением фильтров.

        Номер и размер страницы берутся из параметров пагинации запроса.

        Args:
            filters: Параметры фильтрации
            sort: Порядок сортировки (date, date-desc, price, price-desc, created)
            transformer: Преобразует записи страницы в элементы ответа

        Returns:
            Страница событий в формате ответа списка
        """
        return await self.store.find_many(filters, sort=sort, transformer=transformer)

    async def create_event(self, draft: EventDraft, organizer: User) -> EventRecord:
        """
        Создает новое событие от имени организатора.

        Args:
            draft: Данные события
            organizer: Организатор (роль organizer или admin)

        Returns:
            EventRecord: Созданное событие

        Raises:
            RoleNotPermittedError: Если роль пользователя не позволяет создавать события
            ValidationError: Если данные события некорректны
        """
        require_role(actor_for(organizer), UserRole.ORGANIZER, UserRole.ADMIN)

        draft = validate_creation(draft)
        event = await self.store.create(draft, organizer_id=organizer.id, organizer_name=organizer.name)

        logger.info("Event %s created by user %s", event.id, organizer.id)
        return event

    async def update_event(self, event_id: int, changes: Mapping[str, Any], user: User) -> EventRecord:
        """
        Обновляет событие (частичное обновление полей).

        Args:
            event_id: ID события
            changes: Поля для обновления
            user: Пользователь, пытающийся обновить событие

        Returns:
            EventRecord: Обновленное событие

        Raises:
            EventNotFoundError: Если событие не найдено
            ForbiddenError: Если пользователь не организатор и не администратор
            ValidationError: Если изменения нарушают ограничения события
        """
        actor = actor_for(user)

        if not changes:
            event = await self.get_event(event_id)
            authorize_mutation(event, actor)
            return event

        def decide(current: EventRecord) -> EventRecord:
            # Выполняется над свежей записью под блокировкой события
            authorize_mutation(current, actor)
            return validate_update(current, changes)

        saved = await self.store.apply_update(event_id, decide)

        logger.info("Event %s updated by user %s: %s", event_id, user.id, ", ".join(sorted(changes)))
        return saved

    async def delete_event(self, event_id: int, user: User) -> None:
        """
        Удаляет событие.

        Raises:
            EventNotFoundError: Если событие не найдено
            ForbiddenError: Если пользователь не организатор и не администратор
        """
        event = await self.get_event(event_id)
        authorize_mutation(event, actor_for(user))

        await self.store.delete(event_id)
        logger.info("Event %s deleted by user %s", event_id, user.id)

    async def register_for_event(self, event_id: int, user: User) -> EventRecord:
        """
        Регистрирует пользователя на событие.

        Проверка правил и запись выполняются атомарно для одного события.

        Raises:
            EventNotFoundError: Если событие не найдено
            DomainError: Если регистрация запрещена правилами (sold out и т.д.)
        """
        event = await self.store.apply_registration(event_id, partial(try_register, user_id=user.id))

        logger.info(
            "User %s registered for event %s (%s/%s)",
            user.id, event_id, event.tickets_sold, event.ticket_limit,
        )
        return event

    async def unregister_from_event(self, event_id: int, user: User) -> EventRecord:
        """
        Отменяет регистрацию пользователя на событие.

        Raises:
            EventNotFoundError: Если событие не найдено
            NotRegisteredError: Если пользователь не зарегистрирован
        """
        event = await self.store.apply_registration(event_id, partial(try_unregister, user_id=user.id))

        logger.info(
            "User %s unregistered from event %s (%s/%s)",
            user.id, event_id, event.tickets_sold, event.ticket_limit,
        )
        return event

    async def get_user_events(self, user: User, kind: str = "all") -> List[EventRecord]:
        """
        Получает события пользователя: созданные, посещаемые или все.

        Args:
            user: Пользователь
            kind: all | created | registered

        Returns:
            List[EventRecord]: Список событий, отсортированный по дате
        """
        if kind not in USER_EVENT_TYPES:
            raise ValidationError(f"Unknown event type: {kind}")
        return await self.store.find_for_user(user.id, kind)

    async def load_people(self, events: Iterable[EventRecord]) -> Dict[int, User]:
        """
        Загружает организаторов и участников для ответа API.

        Returns:
            Dict[int, User]: Пользователи по ID
        """
        user_ids = set()
        for event in events:
            user_ids.add(event.organizer_id)
            user_ids.update(event.attendees)

        if not user_ids:
            return {}

        users = await User.filter(id__in=user_ids)
        return {user.id: user for user in users}
