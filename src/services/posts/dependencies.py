# src/services/posts/dependencies.py
"""
Зависимости для Post Service.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import TypeMsg
from src.common.exceptions import BrokerConnectionError
from src.common.logger import log_info, log_error
from src.config import settings
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient
from src.services.posts.publisher import PostEventPublisher
from src.services.posts.repository import PostRepository
from src.services.posts.service import PostService


_db: Optional[DatabaseManager] = None
_redis: Optional[RedisClient] = None
_event_bus: Optional[EventBus] = None
_post_service: Optional[PostService] = None


async def init_dependencies() -> None:
    """Инициализация всех зависимостей сервиса."""
    global _db, _redis, _event_bus, _post_service

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
        # Сервис принимает запросы; публикации вернут предупреждение
        await log_error(f"Post Service запущен без RabbitMQ: {e.message}")

    _post_service = PostService(
        repository=PostRepository(_db),
        redis=_redis,
        publisher=PostEventPublisher(_event_bus),
        post_ttl=settings.redis_ttl.POST_TTL,
        list_ttl=settings.redis_ttl.POSTS_LIST_TTL,
        rate_limit_window=settings.rate_limit.RATE_LIMIT_WINDOW_SECONDS,
        rate_limit_max=settings.rate_limit.RATE_LIMIT_MAX_REQUESTS,
    )

    await log_info("Post Service инициализирован", type_msg=TypeMsg.INFO)


async def close_dependencies() -> None:
    """Закрытие всех ресурсов."""
    global _db, _redis, _event_bus, _post_service

    if _event_bus:
        await _event_bus.close()
        await log_info("RabbitMQ отключён", type_msg=TypeMsg.DEBUG)

    if _redis:
        await _redis.disconnect()
        await log_info("Redis отключён", type_msg=TypeMsg.DEBUG)

    if _db:
        await _db.disconnect()
        await log_info("PostgreSQL отключён", type_msg=TypeMsg.DEBUG)

    _db = _redis = _event_bus = _post_service = None


def get_infra() -> tuple[Optional[DatabaseManager], Optional[RedisClient], Optional[EventBus]]:
    return _db, _redis, _event_bus


async def get_post_service() -> PostService:
    if _post_service is None:
        raise RuntimeError("PostService не инициализирован")
    return _post_service
