# src/services/search/dependencies.py
"""
Зависимости для Search Service.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import ConsumerName, TypeMsg
from src.common.exceptions import BrokerConnectionError
from src.common.logger import log_error, log_info
from src.config import settings
from src.consumers.runner import ConsumerRunner, build_consumers, runner_from_settings
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient
from src.services.search.repository import SearchRepository
from src.services.search.service import SearchService


_db: Optional[DatabaseManager] = None
_redis: Optional[RedisClient] = None
_event_bus: Optional[EventBus] = None
_runner: Optional[ConsumerRunner] = None
_search_service: Optional[SearchService] = None


async def init_dependencies() -> None:
    """Инициализация зависимостей и запуск консьюмера индекса."""
    global _db, _redis, _event_bus, _runner, _search_service

    _db = DatabaseManager()
    await _db.connect()
    await _db.init_schema()
    await log_info("PostgreSQL подключён", type_msg=TypeMsg.DEBUG)

    _redis = RedisClient()
    await _redis.connect()
    await log_info("Redis подключён", type_msg=TypeMsg.DEBUG)

    _event_bus = EventBus.from_settings()
    try:
        await _event_bus.connect()
        await log_info("RabbitMQ подключён", type_msg=TypeMsg.DEBUG)
    except BrokerConnectionError as e:
        # Подписка будет поднята watchdog'ом после восстановления брокера
        await log_error(f"Search Service запущен без RabbitMQ: {e.message}")

    _runner = runner_from_settings(
        _event_bus,
        build_consumers([ConsumerName.SEARCH.value], _event_bus, _db, _redis),
    )
    await _runner.start()

    _search_service = SearchService(
        repository=SearchRepository(_db),
        redis=_redis,
        results_ttl=settings.redis_ttl.SEARCH_RESULTS_TTL,
    )

    await log_info("Search Service инициализирован", type_msg=TypeMsg.INFO)


async def close_dependencies() -> None:
    """Остановка консьюмера и закрытие ресурсов."""
    global _db, _redis, _event_bus, _runner, _search_service

    if _runner:
        await _runner.stop()

    if _event_bus:
        await _event_bus.close()
        await log_info("RabbitMQ отключён", type_msg=TypeMsg.DEBUG)

    if _redis:
        await _redis.disconnect()
        await log_info("Redis отключён", type_msg=TypeMsg.DEBUG)

    if _db:
        await _db.disconnect()
        await log_info("PostgreSQL отключён", type_msg=TypeMsg.DEBUG)

    _db = _redis = _event_bus = _runner = _search_service = None


def get_infra() -> tuple[Optional[DatabaseManager], Optional[RedisClient], Optional[EventBus]]:
    return _db, _redis, _event_bus


async def get_search_service() -> SearchService:
    if _search_service is None:
        raise RuntimeError("SearchService не инициализирован")
    return _search_service
