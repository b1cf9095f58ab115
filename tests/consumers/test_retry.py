# tests/consumers/test_retry.py
"""
Тесты политики повторов.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.consumers.retry import RetryPolicy


class TestRetryPolicy:
    """Тесты для RetryPolicy."""

    @pytest.mark.asyncio
    async def test_record_failure_uses_redis_counter(self, mock_redis) -> None:
        """Проверяет ключ и TTL счётчика в Redis."""
        mock_redis.increment = AsyncMock(return_value=2)
        policy = RetryPolicy(mock_redis, max_retries=5, counter_ttl=120)

        attempts = await policy.record_failure("search", "event-1")

        assert attempts == 2
        mock_redis.increment.assert_awaited_once_with("retry:search:event-1", 120)

    @pytest.mark.parametrize(
        "attempts, exhausted",
        [(1, False), (5, False), (6, True), (10, True)],
    )
    def test_is_exhausted(self, mock_redis, attempts: int, exhausted: bool) -> None:
        """Первая попытка + max_retries повторов, дальше dead-letter."""
        policy = RetryPolicy(mock_redis, max_retries=5)
        assert policy.is_exhausted(attempts) is exhausted

    def test_zero_retries_dead_letters_first_failure(self, mock_redis) -> None:
        policy = RetryPolicy(mock_redis, max_retries=0)
        assert policy.is_exhausted(1)

    @pytest.mark.asyncio
    async def test_falls_back_to_local_counter(self, mock_redis) -> None:
        """При недоступном Redis попытки считаются локально."""
        mock_redis.increment = AsyncMock(side_effect=RedisConnectionError("down"))
        policy = RetryPolicy(mock_redis, max_retries=1)

        first = await policy.record_failure("media", "event-1")
        second = await policy.record_failure("media", "event-1")
        other = await policy.record_failure("media", "event-2")

        assert (first, second, other) == (1, 2, 1)
        assert policy.is_exhausted(second)

    @pytest.mark.asyncio
    async def test_reset_clears_both_counters(self, mock_redis) -> None:
        mock_redis.increment = AsyncMock(side_effect=RedisConnectionError("down"))
        policy = RetryPolicy(mock_redis)
        await policy.record_failure("search", "event-1")

        await policy.reset("search", "event-1")

        mock_redis.delete.assert_awaited_once_with("retry:search:event-1")
        assert await policy.record_failure("search", "event-1") == 1

    @pytest.mark.asyncio
    async def test_reset_tolerates_redis_error(self, mock_redis) -> None:
        mock_redis.delete = AsyncMock(side_effect=RedisConnectionError("down"))
        policy = RetryPolicy(mock_redis)

        await policy.reset("search", "event-1")
