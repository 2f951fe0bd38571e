# eventhub/server/server.py
"""
Основной файл FastAPI приложения.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
from tortoise import Tortoise
from tortoise.exceptions import ConfigurationError, DBConnectionError, OperationalError

from eventhub.config import settings, tortoise_settings
from eventhub.config.logging_config import setup_logging
from eventhub.api.exceptions import register_exception_handlers
from eventhub.stores import TortoiseEventStore

# Импортируем роутеры
from eventhub.api import router as api_router

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _init_middleware(_app: FastAPI) -> None:
    """
    Инициализация middleware приложения.
    """
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )


def _init_sentry() -> None:
    """
    Инициализация Sentry для мониторинга ошибок.
    """
    if settings.USE_SENTRY and settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.2 if settings.is_production else 1.0,
            environment=settings.ENV,
        )
        logger.info("Sentry initialized for environment %s", settings.ENV)


async def _init_tortoise(testing: bool = False) -> None:
    """
    Инициализация Tortoise ORM.

    Args:
        testing: Если True, используется тестовая база данных
    """
    config = settings.test_tortoise_config if testing else tortoise_settings

    try:
        await Tortoise.init(config=config)

        # Создаем схемы (в dev окружении и для тестовой БД в памяти)
        if settings.is_development or testing:
            await Tortoise.generate_schemas(safe=True)
            logger.info("Database schemas generated")

        logger.info("Database initialized successfully (testing=%s)", testing)

    except (DBConnectionError, OperationalError):
        logger.exception("Failed to initialize database")
        raise


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Контекстный менеджер жизненного цикла приложения.
    Управляет подключением к БД.
    """
    testing = getattr(_app.state, "testing", False)

    await _init_tortoise(testing=testing)

    logger.info("Application startup completed successfully")
    try:
        yield
    finally:
        # Гарантируем закрытие соединений при завершении
        await Tortoise.close_connections()
        logger.info("Database connections closed")


def create_app(testing: bool = False) -> FastAPI:
    """
    Создает и настраивает экземпляр FastAPI приложения.

    Args:
        testing: Если True, создается приложение для тестов

    Returns:
        FastAPI: Настроенное приложение
    """
    setup_logging()

    # Инициализация Sentry (если включено)
    if not testing:
        _init_sentry()

    # Создаем приложение с lifespan
    _app = FastAPI(
        title="EventHub API",
        description="API для поиска событий и регистрации участников",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url=settings.DOCS_URL if settings.is_development else None,
        redoc_url=settings.REDOC_URL if settings.is_development else None,
    )

    # Устанавливаем флаг тестирования в состояние приложения
    _app.state.testing = testing

    # Одно хранилище на приложение: в нем живут блокировки событий
    _app.state.event_store = TortoiseEventStore(max_attempts=settings.REGISTRATION_MAX_ATTEMPTS)

    # Инициализация middleware
    _init_middleware(_app)
    register_exception_handlers(_app)

    # Подключаем роутеры
    _app.include_router(api_router)

    # Параметры страницы для списков ListPage
    add_pagination(_app)

    # Корневые endpoint'ы
    @_app.get("/")
    async def root():
        """
        Корневой endpoint для проверки работы API.

        Returns:
            dict: Сообщение о статусе API
        """
        return {
            "success": True,
            "message": "EventHub API",
            "version": API_VERSION,
            "status": "running",
            "environment": settings.ENV,
            "docs": settings.DOCS_URL if settings.is_development else "disabled",
        }

    @_app.get("/health")
    async def health_check():
        """
        Endpoint для проверки здоровья приложения.

        Returns:
            dict: Статус здоровья приложения
        """
        try:
            # Проверяем соединение с БД
            conn = Tortoise.get_connection("default")
            await conn.execute_query("SELECT 1")
            db_status = "connected"
        except (ConfigurationError, DBConnectionError, OperationalError) as e:
            logger.warning("Health check failed: %s", e)
            db_status = "disconnected"

        return {
            "success": db_status == "connected",
            "status": "healthy" if db_status == "connected" else "unhealthy",
            "database": db_status,
            "environment": settings.ENV,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return _app


# Создаем экземпляр приложения для production
app = create_app()


# Экспортируем для использования в main.py
__all__ = ['app', 'create_app']
