# src/consumers/retry.py
"""
Политика повторов для консьюмеров.

Число неудачных попыток считается в Redis (increment с TTL), поэтому
счётчик переживает рестарт консьюмера. После max_retries повторов
(т.е. на max_retries + 1 неудаче) сообщение уходит в dead-letter.
"""

from __future__ import annotations

from redis.exceptions import RedisError

from src.common.logger import log_warning
from src.infra.redis_client import RedisClient


class RetryPolicy:
    """Ограниченный ретрай через nack(requeue=True)."""

    def __init__(
        self,
        redis: RedisClient,
        max_retries: int = 5,
        counter_ttl: int = 86400,
    ) -> None:
        self._redis = redis
        self.max_retries = max_retries
        self._counter_ttl = counter_ttl
        # Используется только пока Redis недоступен
        self._local_attempts: dict[str, int] = {}

    @staticmethod
    def _key(consumer: str, message_key: str) -> str:
        return f"retry:{consumer}:{message_key}"

    async def record_failure(self, consumer: str, message_key: str) -> int:
        """
        Учитывает неудачную попытку.

        Returns:
            Общее число неудачных попыток для сообщения
        """
        key = self._key(consumer, message_key)
        try:
            return await self._redis.increment(key, self._counter_ttl)
        except RedisError as e:
            await log_warning(f"Счётчик попыток в Redis недоступен ({e!r}), учитываю локально")
            self._local_attempts[key] = self._local_attempts.get(key, 0) + 1
            return self._local_attempts[key]

    def is_exhausted(self, attempts: int) -> bool:
        """Исчерпан ли бюджет: первая попытка + max_retries повторов."""
        return attempts > self.max_retries

    async def reset(self, consumer: str, message_key: str) -> None:
        """Сбрасывает счётчик после успеха или dead-letter."""
        key = self._key(consumer, message_key)
        self._local_attempts.pop(key, None)
        try:
            await self._redis.delete(key)
        except RedisError as e:
            await log_warning(f"Не удалось сбросить счётчик попыток {key}: {e!r}")
