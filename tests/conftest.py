# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.common.exceptions import DuplicateEventError, InvalidObjectKeyError, StorageError
from src.consumers.retry import RetryPolicy
from src.infra.event_bus import Delivery
from src.services.media.storage import MediaStorage
from src.shared.events import EventEnvelope, PostCreated, PostCreatedPayload, PostDeleted, PostDeletedPayload
from src.shared.models.media import MediaDTO
from src.shared.models.search import SearchPostDTO


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Тестовая конфигурация",
        "PROJECT_NAME": "social_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FORMAT": "json",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "social_test",
        "DB_USER": "postgres",
        "DB_PASSWORD": "test_password",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_NAMESPACE": "social_test",
        "POST_TTL": 120,
        "RABBITMQ_HOST": "localhost",
        "RABBITMQ_EXCHANGE": "social.test",
        "RABBITMQ_DLX_EXCHANGE": "social.test.dlx",
        "RABBITMQ_PREFETCH_COUNT": 5,
        "RABBITMQ_CONNECT_ATTEMPTS": 3,
        "CONSUMER_MAX_RETRIES": 3,
        "CONSUMER_PROCESSING_TIMEOUT": 5.0,
        "RATE_LIMIT_MAX_REQUESTS": 2,
        "MEDIA_ROOT": "/tmp/social-media",
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.delete_pattern = AsyncMock(return_value=0)
    redis.increment = AsyncMock(return_value=1)
    redis.get_model = AsyncMock(return_value=None)
    redis.set_model = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=None)
    event_bus.publish_dead_letter = AsyncMock(return_value=None)
    event_bus.subscribe = AsyncMock(return_value=None)
    event_bus.reconnect = AsyncMock(return_value=None)
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# IN-MEMORY ФЕЙКИ ХРАНИЛИЩА
# =============================================================================

class FakeDatabase:
    """
    Транзакционное in-memory хранилище.
    Транзакции сериализуются, исключение внутри блока откатывает все таблицы.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = defaultdict(dict)
        self.commits = 0
        self.rollbacks = 0
        self._fail_queue: list[BaseException] = []
        self._lock = asyncio.Lock()

    def fail_next(self, error: BaseException, times: int = 1) -> None:
        """Следующие times транзакций упадут с error при открытии."""
        self._fail_queue.extend([error] * times)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator["FakeDatabase", None]:
        async with self._lock:
            if self._fail_queue:
                raise self._fail_queue.pop(0)
            snapshot = copy.deepcopy(dict(self.tables))
            try:
                yield self
            except BaseException:
                self.tables.clear()
                self.tables.update(snapshot)
                self.rollbacks += 1
                raise
            self.commits += 1


class FakeProcessedEvents:
    """Аналог ProcessedEventRepository поверх FakeDatabase."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db

    async def mark_processed(self, conn: FakeDatabase, consumer: str, event: EventEnvelope) -> None:
        key = f"{consumer}:{event.event_id}"
        table = conn.tables["processed_events"]
        if key in table:
            raise DuplicateEventError(f"Событие {event.event_id} уже применено")
        table[key] = event.event_type

    async def prune(self, consumer: str, retention: timedelta) -> int:
        return 0


class FakeSearchRepository:
    """Аналог SearchRepository: индекс и tombstones в FakeDatabase."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.pruned_with: timedelta | None = None

    async def lock_post(self, conn: FakeDatabase, post_id: str) -> None:
        return None

    async def upsert(
        self,
        conn: FakeDatabase,
        post_id: str,
        user_id: str,
        title: str,
        content: str,
    ) -> bool:
        if post_id in conn.tables["search_tombstones"]:
            return False
        conn.tables["search_posts"][post_id] = {
            "post_id": post_id,
            "user_id": user_id,
            "title": title,
            "content": content,
            "indexed_at": datetime.now(timezone.utc),
        }
        return True

    async def delete_by_key(self, conn: FakeDatabase, post_id: str) -> bool:
        existed = conn.tables["search_posts"].pop(post_id, None) is not None
        conn.tables["search_tombstones"][post_id] = True
        return existed

    async def find_by_key(self, post_id: str) -> SearchPostDTO | None:
        row = self.db.tables["search_posts"].get(post_id)
        return SearchPostDTO.model_validate(row) if row else None

    async def prune_tombstones(self, retention: timedelta) -> int:
        self.pruned_with = retention
        return 0


class FakeMediaRepository:
    """Аналог MediaRepository поверх FakeDatabase."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db

    def add(self, media_id: str, public_id: str, user_id: str = "user-1", post_id: str | None = None) -> None:
        self.db.tables["media"][media_id] = {
            "media_id": media_id,
            "post_id": post_id,
            "user_id": user_id,
            "public_id": public_id,
            "storage_url": f"https://cdn.example.com/{public_id}",
            "mime_type": "image/png",
            "created_at": datetime.now(timezone.utc),
        }

    async def attach_to_post(self, conn: FakeDatabase, post_id: str, media_ids: list[str]) -> int:
        attached = 0
        for media_id in media_ids:
            row = conn.tables["media"].get(media_id)
            if row is not None and row["post_id"] in (None, post_id):
                row["post_id"] = post_id
                attached += 1
        return attached

    async def find_for_post(self, conn: FakeDatabase, post_id: str, media_ids: list[str]) -> list[MediaDTO]:
        rows = [
            row for media_id, row in sorted(conn.tables["media"].items())
            if row["post_id"] == post_id or (row["post_id"] is None and media_id in media_ids)
        ]
        return [MediaDTO.model_validate(row) for row in rows]

    async def delete_by_key(self, conn: FakeDatabase, media_id: str) -> bool:
        return conn.tables["media"].pop(media_id, None) is not None


class FakeMediaStorage(MediaStorage):
    """Хранилище объектов в памяти; можно заставить падать."""

    def __init__(self, objects: set[str] | None = None) -> None:
        self.objects: set[str] = set(objects or ())
        self.deleted: list[str] = []
        self.failures = 0
        self.invalid: set[str] = set()

    async def delete(self, public_id: str) -> bool:
        if public_id in self.invalid:
            raise InvalidObjectKeyError(f"public_id вне хранилища: {public_id}")
        if self.failures:
            self.failures -= 1
            raise StorageError(f"Хранилище недоступно: {public_id}")
        self.deleted.append(public_id)
        if public_id not in self.objects:
            return False
        self.objects.discard(public_id)
        return True


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def processed_events(fake_db: FakeDatabase) -> FakeProcessedEvents:
    return FakeProcessedEvents(fake_db)


@pytest.fixture
def retry_policy(mock_redis: AsyncMock) -> RetryPolicy:
    """Политика повторов со счётчиком в памяти вместо Redis."""
    counters: dict[str, int] = defaultdict(int)

    async def increment(key: str, ttl: int) -> int:
        counters[key] += 1
        return counters[key]

    async def delete(*keys: str) -> int:
        return sum(counters.pop(k, 0) > 0 for k in keys)

    mock_redis.increment = AsyncMock(side_effect=increment)
    mock_redis.delete = AsyncMock(side_effect=delete)
    return RetryPolicy(mock_redis, max_retries=3, counter_ttl=60)


# =============================================================================
# ФИКСТУРЫ СОБЫТИЙ
# =============================================================================

def make_post_created(
    post_id: str = "p1",
    user_id: str = "u1",
    title: str = "Hello",
    content: str = "World",
    media_ids: list[str] | None = None,
    event_id: str | None = None,
) -> PostCreated:
    kwargs: dict[str, Any] = {}
    if event_id is not None:
        kwargs["event_id"] = event_id
    return PostCreated(
        payload=PostCreatedPayload(
            post_id=post_id,
            user_id=user_id,
            title=title,
            content=content,
            media_ids=media_ids or [],
        ),
        **kwargs,
    )


def make_post_deleted(
    post_id: str = "p1",
    media_ids: list[str] | None = None,
    event_id: str | None = None,
) -> PostDeleted:
    kwargs: dict[str, Any] = {}
    if event_id is not None:
        kwargs["event_id"] = event_id
    return PostDeleted(
        payload=PostDeletedPayload(post_id=post_id, media_ids=media_ids or []),
        **kwargs,
    )


def make_delivery(event: EventEnvelope | bytes, queue_name: str = "social.search") -> Delivery:
    """Оборачивает событие (или сырое тело) в Delivery."""
    if isinstance(event, bytes):
        return Delivery(body=event, routing_key="post.created", queue_name=queue_name)
    return Delivery(
        body=event.to_bytes(),
        routing_key=event.routing_key,
        queue_name=queue_name,
        message_id=event.event_id,
    )
