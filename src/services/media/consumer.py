# src/services/media/consumer.py
"""
Консьюмер медиа.

post.created → привязка медиа к посту
post.deleted → удаление объектов из хранилища и их записей
"""

from __future__ import annotations

from asyncpg import Connection

from src.common.constants import ConsumerName, EventType, TypeMsg
from src.common.exceptions import (
    InvalidObjectKeyError,
    ProjectionWriteError,
    StorageError,
    UnprocessableEventError,
)
from src.common.logger import log_info
from src.consumers.base import EventConsumer, PostEvent
from src.consumers.idempotency import ProcessedEventRepository
from src.consumers.retry import RetryPolicy
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.services.media.repository import MediaRepository
from src.services.media.storage import MediaStorage
from src.shared.events import PostCreated, PostDeleted


class MediaConsumer(EventConsumer):
    """Поддерживает проекцию media."""

    def __init__(
        self,
        event_bus: EventBus,
        db: DatabaseManager,
        retry_policy: RetryPolicy,
        storage: MediaStorage,
        repository: MediaRepository | None = None,
        processed_events: ProcessedEventRepository | None = None,
        processing_timeout: float = 30.0,
    ) -> None:
        super().__init__(event_bus, db, retry_policy, processed_events, processing_timeout)
        self.storage = storage
        self.repository = repository or MediaRepository(db)

    @property
    def name(self) -> str:
        return ConsumerName.MEDIA.value

    @property
    def routing_keys(self) -> list[str]:
        return [EventType.POST_CREATED.value, EventType.POST_DELETED.value]

    async def apply(self, conn: Connection, event: PostEvent) -> None:
        if isinstance(event, PostCreated):
            attached = await self.repository.attach_to_post(
                conn, event.payload.post_id, event.payload.media_ids,
            )
            await log_info(
                f"К посту {event.payload.post_id} привязано медиа: {attached}",
                type_msg=TypeMsg.DEBUG,
            )
        elif isinstance(event, PostDeleted):
            await self._delete_post_media(conn, event)

    async def _delete_post_media(self, conn: Connection, event: PostDeleted) -> None:
        """
        Объект удаляется из хранилища до удаления записи: при сбое транзакция
        откатывается, повтор удалит уже отсутствующий объект без ошибки.
        """
        post_id = event.payload.post_id
        media = await self.repository.find_for_post(conn, post_id, event.payload.media_ids)

        for item in media:
            try:
                await self.storage.delete(item.public_id)
            except InvalidObjectKeyError as e:
                raise UnprocessableEventError(e.message, details={"media_id": item.media_id}) from e
            except StorageError as e:
                raise ProjectionWriteError(e.message, details={"media_id": item.media_id}) from e
            await self.repository.delete_by_key(conn, item.media_id)
            await log_info(
                f"Удалено медиа {item.media_id}, связанное с удалённым постом {post_id}",
                type_msg=TypeMsg.INFO,
            )

        await log_info(
            f"Обработано удаление медиа поста {post_id}: {len(media)}",
            type_msg=TypeMsg.INFO,
        )
