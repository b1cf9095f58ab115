# src/services/media/dependencies.py
"""
Зависимости для Media Service.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import ConsumerName, TypeMsg
from src.common.exceptions import BrokerConnectionError
from src.common.logger import log_error, log_info
from src.consumers.runner import ConsumerRunner, build_consumers, runner_from_settings
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient
from src.services.media.repository import MediaRepository
from src.services.media.service import MediaService


_db: Optional[DatabaseManager] = None
_redis: Optional[RedisClient] = None
_event_bus: Optional[EventBus] = None
_runner: Optional[ConsumerRunner] = None
_media_service: Optional[MediaService] = None


async def init_dependencies() -> None:
    """Инициализация зависимостей и запуск консьюмера медиа."""
    global _db, _redis, _event_bus, _runner, _media_service

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
        await log_error(f"Media Service запущен без RabbitMQ: {e.message}")

    _runner = runner_from_settings(
        _event_bus,
        build_consumers([ConsumerName.MEDIA.value], _event_bus, _db, _redis),
    )
    await _runner.start()

    _media_service = MediaService(MediaRepository(_db))

    await log_info("Media Service инициализирован", type_msg=TypeMsg.INFO)


async def close_dependencies() -> None:
    """Остановка консьюмера и закрытие ресурсов."""
    global _db, _redis, _event_bus, _runner, _media_service

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

    _db = _redis = _event_bus = _runner = _media_service = None


def get_infra() -> tuple[Optional[DatabaseManager], Optional[RedisClient], Optional[EventBus]]:
    return _db, _redis, _event_bus


async def get_media_service() -> MediaService:
    if _media_service is None:
        raise RuntimeError("MediaService не инициализирован")
    return _media_service
