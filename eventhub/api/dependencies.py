# eventhub/api/dependencies.py
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from typing import Optional

from eventhub.api.exceptions import AuthException
from eventhub.config import decode_token
from eventhub.db.models import User
from eventhub.domain import UserRole
from eventhub.domain.errors import RoleNotPermittedError
from eventhub.services.event import EventService
from eventhub.services.user import UserService
from eventhub.stores import EventStore

# Две схемы безопасности
security_required = HTTPBearer(auto_error=False)  # Для обязательной аутентификации
security_optional = HTTPBearer(auto_error=False)  # Для опциональной аутентификации


async def _user_from_token(token: str) -> Optional[User]:
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    email = payload.get("sub")
    if email is None:
        return None

    return await User.get_or_none(email=email)


async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_required)
) -> User:
    if credentials is None:
        raise AuthException("Not authorized, no token")

    user = await _user_from_token(credentials.credentials)
    if user is None:
        raise AuthException("Could not validate credentials")

    return user


async def get_current_user_optional(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional)
) -> Optional[User]:
    if credentials is None:
        return None

    return await _user_from_token(credentials.credentials)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise RoleNotPermittedError(
            f"User role {UserRole(current_user.role).value} is not authorized to access this route"
        )
    return current_user


def get_event_store(request: Request) -> EventStore:
    # Хранилище создается один раз в create_app
    return request.app.state.event_store


def get_event_service(store: EventStore = Depends(get_event_store)) -> EventService:
    return EventService(store)


def get_user_service(store: EventStore = Depends(get_event_store)) -> UserService:
    return UserService(store)
