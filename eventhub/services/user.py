# eventhub/services/user.py
"""
Сервис администрирования пользователей.
"""

import logging
from functools import partial
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from tortoise.expressions import Q
from tortoise.queryset import QuerySet

from eventhub.db.models import User
from eventhub.domain import Actor, UserRole
from eventhub.domain.errors import ForbiddenError, UserNotFoundError
from eventhub.domain.rules import try_unregister
from eventhub.stores import EventStore

logger = logging.getLogger(__name__)

USER_SORT_FIELDS = {
    "name": "name",
    "email": "email",
    "role": "role",
    "lastLogin": "-last_login",
    "created": "-created_at",
}


class UserService:
    """Сервис пользователей"""

    def __init__(self, store: EventStore):
        self.store = store

    def users_query(
            self,
            role: Optional[UserRole] = None,
            search: Optional[str] = None,
            sort: str = "created",
    ) -> QuerySet[User]:
        """
        Строит запрос пользователей с фильтрами и сортировкой.

        Страницу выбирает пагинация в роутере.

        Args:
            role: Фильтр по роли
            search: Поиск по имени или email (без учета регистра)
            sort: name | email | role | lastLogin | created
        """
        query = User.all()

        if role:
            query = query.filter(role=role)

        if search:
            query = query.filter(Q(name__icontains=search) | Q(email__icontains=search))

        order = USER_SORT_FIELDS.get(sort, USER_SORT_FIELDS["created"])
        return query.order_by(order, "id")

    async def get_user(self, user_id: int, actor: Actor) -> User:
        """
        Получает пользователя: свой профиль или любой профиль для администратора.

        Raises:
            UserNotFoundError: Если пользователь не найден
            ForbiddenError: Если запрошен чужой профиль без прав администратора
        """
        user = await User.get_or_none(id=user_id)
        if user is None:
            raise UserNotFoundError()

        if actor.id != user.id and not actor.is_admin:
            raise ForbiddenError("Not authorized to access this user data")

        return user

    async def update_user(self, user_id: int, update_data: Dict[str, Any]) -> User:
        """
        Обновляет пользователя (роль и профиль). Только для администратора.

        Raises:
            UserNotFoundError: Если пользователь не найден
        """
        user = await User.get_or_none(id=user_id)
        if user is None:
            raise UserNotFoundError()

        for field, value in update_data.items():
            if value is not None:
                setattr(user, field, value)

        await user.save()
        await user.refresh_from_db()

        logger.info("User %s updated by admin: %s", user_id, ", ".join(sorted(update_data)))
        return user

    async def delete_user(self, user_id: int) -> None:
        """
        Удаляет пользователя. Только для администратора.

        Перед удалением пользователь снимается с регистраций, чтобы счетчики
        билетов совпадали со списками участников.

        Raises:
            UserNotFoundError: Если пользователь не найден
        """
        if not await User.filter(id=user_id).exists():
            raise UserNotFoundError()

        for event in await self.store.find_for_user(user_id, "registered"):
            await self.store.apply_registration(event.id, partial(try_unregister, user_id=user_id))

        await User.filter(id=user_id).delete()

        logger.info("User %s deleted by admin", user_id)

    async def get_stats_overview(self) -> Dict[str, int]:
        """Получает сводную статистику пользователей по ролям."""
        thirty_days_ago = datetime.now(timezone.utc) - timedelta(days=30)

        return {
            "total_users": await User.all().count(),
            "attendees": await User.filter(role=UserRole.ATTENDEE).count(),
            "organizers": await User.filter(role=UserRole.ORGANIZER).count(),
            "admins": await User.filter(role=UserRole.ADMIN).count(),
            "verified_users": await User.filter(is_verified=True).count(),
            "recent_users": await User.filter(created_at__gte=thirty_days_ago).count(),
        }

