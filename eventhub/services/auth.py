# eventhub/services/auth.py
"""
Сервис для работы с аутентификацией и профилем пользователя.
Содержит бизнес-логику для регистрации, входа и смены пароля.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any

from eventhub.db.models import User
from eventhub.domain import UserRole
from eventhub.domain.errors import AuthenticationError, ValidationError
from eventhub.config import (
    verify_password,
    get_password_hash,
    create_user_access_token,
)

logger = logging.getLogger(__name__)

# Роли, которые пользователь может выбрать при регистрации
SELF_ASSIGNABLE_ROLES = (UserRole.ATTENDEE, UserRole.ORGANIZER)


class AuthService:
    """Сервис аутентификации"""

    async def register_user(
            self,
            email: str,
            name: str,
            password: str,
            role: UserRole = UserRole.ATTENDEE,
    ) -> User:
        """
        Регистрирует нового пользователя.

        Args:
            email: Email пользователя
            name: Имя пользователя
            password: Пароль
            role: Роль (attendee или organizer)

        Returns:
            User: Созданный пользователь

        Raises:
            ValidationError: Если пользователь уже существует или роль недоступна
        """
        # Проверяем, существует ли пользователь
        existing_user = await User.get_or_none(email=email)
        if existing_user:
            raise ValidationError("User already exists with this email")

        if role not in SELF_ASSIGNABLE_ROLES:
            raise ValidationError(f"Role {role.value} cannot be self-assigned")

        user = await User.create(
            email=email,
            name=name,
            role=role,
            hashed_password=get_password_hash(password),
        )

        logger.info("User %s registered with role %s", user.id, role.value)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Аутентифицирует пользователя по email и паролю и обновляет время входа.

        Raises:
            AuthenticationError: Если email или пароль неверны
        """
        user = await User.get_or_none(email=email)
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid credentials")

        user.last_login = datetime.now(timezone.utc)
        await user.save(update_fields=["last_login"])
        return user

    def create_token(self, user: User) -> str:
        """Создает JWT токен доступа для пользователя."""
        return create_user_access_token(user)

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        """
        Изменяет пароль пользователя.

        Raises:
            ValidationError: Если старый пароль неверен или новый пароль совпадает со старым
        """
        # Проверяем старый пароль
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("Incorrect old password")

        # Проверяем, что новый пароль отличается от старого
        if verify_password(new_password, user.hashed_password):
            raise ValidationError("New password must be different from old password")

        user.hashed_password = get_password_hash(new_password)
        await user.save(update_fields=["hashed_password", "updated_at"])

    async def update_user_profile(self, user: User, update_data: Dict[str, Any]) -> User:
        """
        Обновляет профиль пользователя.

        Args:
            user: Объект пользователя
            update_data: Данные для обновления

        Returns:
            User: Обновленный пользователь
        """
        # Удаляем None значения
        clean_data = {k: v for k, v in update_data.items() if v is not None}

        if not clean_data:
            return user

        for field, value in clean_data.items():
            setattr(user, field, value)

        await user.save()
        await user.refresh_from_db()
        return user


# Сервис без состояния
auth_service = AuthService()
