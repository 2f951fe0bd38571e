"""
Конфигурация приложения.
Объединяет все настройки в одном месте.
"""

from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any
from jose import jwt
from passlib.context import CryptContext
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Константы
ROOT_DIR = Path(__file__).parents[2]
ENV_FILE_PATH = ROOT_DIR.joinpath('.env')

TOKEN_ISSUER = "eventhub_api"
TOKEN_AUDIENCE = "eventhub_api_users"

# Контекст для хеширования паролей
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12,
    bcrypt__ident="2b"  # Явно указываем идентификатор
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Environment
    ENV: str = Field(default="development")

    # Database
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="eventhub")

    # JWT
    SECRET_KEY: str = Field(default="your-secret-key-change-this-in-production")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=1440)  # 24 hours

    # CORS
    CORS_ORIGINS: List[str] = Field(default=["*"])
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default=["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default=["*"])

    # API Docs
    DOCS_URL: str = Field(default="/docs")
    REDOC_URL: str = Field(default="/redoc")

    # Server Settings
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=8000)
    RELOAD: bool = Field(default=True)
    WORKERS: int = Field(default=1)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    # Sentry
    USE_SENTRY: bool = Field(default=False)
    SENTRY_DSN: str = Field(default="")

    # Registration
    REGISTRATION_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    # Test
    TEST_DB_URL: str = Field(default="sqlite://:memory:")

    # Computed properties
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    @property
    def postgres_dsn(self) -> str:
        return f"postgres://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def tortoise_config(self) -> dict:
        return {
            "connections": {
                "default": self.postgres_dsn
            },
            "apps": {
                "server": {
                    "models": [
                        "aerich.models",
                        "eventhub.db.models",
                    ],
                    "default_connection": "default",
                }
            }
        }

    @property
    def test_tortoise_config(self) -> dict:
        return {
            "connections": {
                "default": self.TEST_DB_URL
            },
            "apps": {
                "server": {
                    "models": ["eventhub.db.models"],
                    "default_connection": "default",
                }
            }
        }


# Создаем экземпляр настроек
settings = Settings()
tortoise_settings = settings.tortoise_config

# Конфигурация для aerich (aerich init -t eventhub.config.TORTOISE_ORM)
TORTOISE_ORM = tortoise_settings


# Функции безопасности
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверяет соответствие обычного пароля хешированному."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Генерирует хеш пароля."""
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Создает JWT токен доступа."""
    if "sub" not in data:
        raise ValueError("Token data must contain 'sub' key")

    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    # Устанавливаем время истечения
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # Добавляем стандартные поля JWT
    to_encode.update({
        "exp": expire,
        "iat": now,
        "iss": TOKEN_ISSUER,
        "aud": TOKEN_AUDIENCE,
    })

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_user_access_token(user) -> str:
    """Создает токен доступа для пользователя."""
    from eventhub.db.models import User

    if not isinstance(user, User):
        raise TypeError(f"Expected User instance, got {type(user).__name__}")

    if not user.email:
        raise ValueError("User must have an email address")

    return create_access_token({"sub": user.email, "role": user.role.value})


def decode_token(token: str) -> Dict[str, Any]:
    """
    Декодирует и проверяет JWT токен.

    Raises:
        JWTError: Если токен истек или подпись неверна
    """
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        audience=TOKEN_AUDIENCE,
        issuer=TOKEN_ISSUER,
    )


__all__ = [
    'settings',
    'tortoise_settings',
    'TORTOISE_ORM',
    'verify_password',
    'get_password_hash',
    'create_access_token',
    'create_user_access_token',
    'decode_token',
]
