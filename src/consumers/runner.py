# src/consumers/runner.py
"""
Запускалка консьюмеров.

Помимо старта консьюмеров держит две фоновые задачи:
- watchdog: при потере соединения с RabbitMQ переподключается
  с backoff и восстанавливает подписки;
- prune: периодически чистит устаревшие отметки дедупликации.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Sequence

from src.common.constants import ConsumerName, TypeMsg
from src.common.exceptions import BrokerConnectionError
from src.common.logger import log_error, log_info, log_warning
from src.consumers.base import STORE_ERRORS, EventConsumer
from src.consumers.retry import RetryPolicy
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient


class ConsumerRunner:
    """Управляет жизненным циклом набора консьюмеров одного процесса."""

    def __init__(
        self,
        event_bus: EventBus,
        consumers: Sequence[EventConsumer],
        watchdog_interval: float = 1.0,
        prune_interval: float = 3600.0,
        dedup_retention: timedelta = timedelta(hours=168),
    ) -> None:
        self.event_bus = event_bus
        self.consumers = list(consumers)
        self.watchdog_interval = watchdog_interval
        self.prune_interval = prune_interval
        self.dedup_retention = dedup_retention
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Запускает консьюмеров и фоновые задачи."""
        if self._tasks:
            return

        for consumer in self.consumers:
            await consumer.start()

        self._tasks = [
            asyncio.create_task(self._watchdog_loop(), name="consumers-watchdog"),
            asyncio.create_task(self._prune_loop(), name="consumers-prune"),
        ]
        await log_info(f"Запущено {len(self.consumers)} консьюмеров", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает фоновые задачи и консьюмеров."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        for consumer in self.consumers:
            await consumer.stop()

        await log_info("Консьюмеры остановлены", type_msg=TypeMsg.INFO)

    async def check_connection(self) -> bool:
        """
        Одна итерация watchdog.

        Returns:
            True, если соединение активно (или восстановлено)
        """
        if self.event_bus.is_connected:
            return True
        try:
            await self.event_bus.reconnect()
        except BrokerConnectionError as e:
            await log_error(f"Переподключение к RabbitMQ не удалось: {e.message}")
            return False
        return True

    async def prune_once(self) -> int:
        """Чистит отметки дедупликации всех консьюмеров."""
        total = 0
        for consumer in self.consumers:
            try:
                removed = await consumer.prune(self.dedup_retention)
            except STORE_ERRORS as e:
                await log_warning(f"Очистка processed_events для {consumer.name} не удалась: {e!r}")
                continue
            total += removed
        if total:
            await log_info(f"Удалено устаревших отметок дедупликации: {total}", type_msg=TypeMsg.DEBUG)
        return total

    async def _watchdog_loop(self) -> None:
        while True:
            await asyncio.sleep(self.watchdog_interval)
            await self.check_connection()

    async def _prune_loop(self) -> None:
        while True:
            await asyncio.sleep(self.prune_interval)
            await self.prune_once()


def build_consumers(
    names: Sequence[str],
    event_bus: EventBus,
    db: DatabaseManager,
    redis: RedisClient,
) -> list[EventConsumer]:
    """Создаёт консьюмеров по именам с политикой из конфига."""
    from src.config import settings
    from src.services.media.consumer import MediaConsumer
    from src.services.media.storage import FileSystemMediaStorage
    from src.services.search.consumer import SearchConsumer

    retry_policy = RetryPolicy(
        redis,
        max_retries=settings.consumers.MAX_RETRIES,
        counter_ttl=settings.redis_ttl.RETRY_COUNTER_TTL,
    )
    timeout = settings.consumers.PROCESSING_TIMEOUT

    consumers: list[EventConsumer] = []
    for name in names:
        if name == ConsumerName.SEARCH:
            consumers.append(
                SearchConsumer(event_bus, db, retry_policy, processing_timeout=timeout),
            )
        elif name == ConsumerName.MEDIA:
            consumers.append(
                MediaConsumer(
                    event_bus,
                    db,
                    retry_policy,
                    storage=FileSystemMediaStorage(settings.media.MEDIA_ROOT),
                    processing_timeout=timeout,
                ),
            )
        else:
            raise ValueError(f"Неизвестный консьюмер: {name}")
    return consumers


def runner_from_settings(event_bus: EventBus, consumers: Sequence[EventConsumer]) -> ConsumerRunner:
    from src.config import settings

    cfg = settings.consumers
    return ConsumerRunner(
        event_bus,
        consumers,
        watchdog_interval=cfg.WATCHDOG_INTERVAL_SECONDS,
        prune_interval=cfg.PRUNE_INTERVAL_SECONDS,
        dedup_retention=timedelta(hours=cfg.DEDUP_RETENTION_HOURS),
    )


async def run_consumers(names: Sequence[str] | None = None) -> None:
    """
    Запускает консьюмеров в отдельном процессе.

    Args:
        names: Имена консьюмеров (по умолчанию search и media)
    """
    names = list(names or (ConsumerName.SEARCH.value, ConsumerName.MEDIA.value))
    await log_info(f"Запуск консьюмеров: {', '.join(names)}", type_msg=TypeMsg.INFO)

    db = DatabaseManager()
    redis = RedisClient()
    event_bus = EventBus.from_settings()

    await db.connect()
    await db.init_schema()
    await redis.connect()
    await event_bus.connect()

    runner = runner_from_settings(event_bus, build_consumers(names, event_bus, db, redis))

    try:
        await runner.start()
        # Ждём завершения (Ctrl+C)
        while True:
            await asyncio.sleep(1)
    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    finally:
        await runner.stop()
        await event_bus.close()
        await redis.disconnect()
        await db.disconnect()


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_consumers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
