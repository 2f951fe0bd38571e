"""Политика повторов при сбоях инфраструктуры с экспоненциальной задержкой."""

import random


class RetryConfig:
    """
    Настройки повторов запроса.

    Attributes:
        max_retries: Сколько раз повторить запрос после первой попытки
        initial_delay: Начальная задержка в секундах
        max_delay: Максимальная задержка между попытками в секундах
        exponential_base: Основание экспоненциального роста задержки
        jitter: Случайная добавка, чтобы клиенты не повторяли запросы одновременно
    """

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """
        Задержка в секундах перед повтором номер attempt (с нуля).

        При initial_delay=0.5 и exponential_base=2.0 получается
        0.5s, 1.0s, 2.0s, ... не больше max_delay, плюс до 30% случайной добавки.
        """
        delay = min(self.initial_delay * (self.exponential_base ** attempt), self.max_delay)

        if self.jitter:
            delay += random.uniform(0, 0.3 * delay)

        return delay
