import pytest
import pytest_asyncio
import asyncio
from datetime import date, time, timedelta
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from tortoise import Tortoise

from eventhub.config import settings, get_password_hash, create_user_access_token
from eventhub.db.models import Event, User
from eventhub.domain import EventCategory, UserRole
from eventhub.server.server import create_app

TEST_PASSWORD = "Secret123"


@pytest.fixture(scope="session")
def event_loop():
    """Создание events loop для тестов с областью видимости сессии."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


@pytest_asyncio.fixture(scope="session", autouse=True)
async def initialize_db():
    """Инициализация тестовой базы данных перед всеми тестами."""
    # SQLite в памяти, app "server" как в моделях
    await Tortoise.init(config=settings.test_tortoise_config)

    # Создание таблиц
    await Tortoise.generate_schemas()

    yield

    # Закрытие соединений
    await Tortoise.close_connections()


@pytest_asyncio.fixture(scope="function", autouse=True)
async def clean_db():
    """
    Фикстура для очистки базы данных после каждого теста.
    """
    yield  # Сначала выполняем тест

    # Регистрации удаляются каскадно вместе с событиями
    await Event.all().delete()
    await User.all().delete()


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Хеш пароля считается один раз: bcrypt медленный."""
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="session")
def app():
    return create_app(testing=True)


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Фикстура для асинхронного тестового клиента."""
    # Используем ASGITransport для подключения к FastAPI приложению
    async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def make_user(password_hash):
    """Создает пользователя напрямую в БД и возвращает (user, headers)."""

    async def _make_user(email: str, role: UserRole = UserRole.ATTENDEE, name: str = None):
        user = await User.create(
            email=email,
            name=name or email.split("@")[0].capitalize(),
            role=role,
            hashed_password=password_hash,
        )
        headers = {"Authorization": f"Bearer {create_user_access_token(user)}"}
        return user, headers

    return _make_user


@pytest_asyncio.fixture
async def organizer(make_user):
    return await make_user("organizer@example.com", UserRole.ORGANIZER, "Olga Organizer")


@pytest_asyncio.fixture
async def attendee(make_user):
    return await make_user("attendee@example.com", UserRole.ATTENDEE, "Anna Attendee")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin@example.com", UserRole.ADMIN, "Adam Admin")


def _event_payload(**overrides) -> dict:
    payload = {
        "title": "Python Meetup",
        "description": "Talks about asyncio and FastAPI",
        "category": EventCategory.TECHNOLOGY.value,
        "date": (date.today() + timedelta(days=30)).isoformat(),
        "time": "18:00:00",
        "location": "Berlin, Alexanderplatz 1",
        "ticket_limit": 10,
        "price": 15.5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def event_payload():
    """Фабрика тела запроса на создание события."""
    return _event_payload


@pytest.fixture
def make_event():
    """Создает событие напрямую в БД."""

    async def _make_event(organizer: User, **overrides) -> Event:
        values = {
            "title": "Python Meetup",
            "description": "Talks about asyncio and FastAPI",
            "category": EventCategory.TECHNOLOGY,
            "date": date.today() + timedelta(days=30),
            "time": time(18, 0),
            "location": "Berlin, Alexanderplatz 1",
            "ticket_limit": 10,
            "price": 15.5,
        }
        values.update(overrides)
        return await Event.create(organizer=organizer, organizer_name=organizer.name, **values)

    return _make_event
