"""
Настройка логирования приложения.
"""

import logging
import logging.config
import sys
from typing import Optional

from eventhub.config import settings


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Настраивает логирование через dictConfig.

    Args:
        log_level: Уровень логирования (по умолчанию из настроек)
    """
    level = (log_level or settings.LOG_LEVEL).upper()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": settings.LOG_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "eventhub": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
            # Шум от библиотек
            "tortoise": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
            },
        },
    }

    logging.config.dictConfig(config)
