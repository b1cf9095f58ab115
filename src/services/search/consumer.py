# src/services/search/consumer.py
"""
Консьюмер поискового индекса.

post.created → upsert записи (если пост ещё не удалён)
post.deleted → удаление записи и tombstone
"""

from __future__ import annotations

from datetime import timedelta

from asyncpg import Connection

from src.common.constants import ConsumerName, EventType, TypeMsg
from src.common.logger import log_info
from src.consumers.base import EventConsumer, PostEvent
from src.consumers.idempotency import ProcessedEventRepository
from src.consumers.retry import RetryPolicy
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.services.search.repository import SearchRepository
from src.shared.events import PostCreated, PostDeleted


class SearchConsumer(EventConsumer):
    """Поддерживает проекцию search_posts."""

    def __init__(
        self,
        event_bus: EventBus,
        db: DatabaseManager,
        retry_policy: RetryPolicy,
        repository: SearchRepository | None = None,
        processed_events: ProcessedEventRepository | None = None,
        processing_timeout: float = 30.0,
    ) -> None:
        super().__init__(event_bus, db, retry_policy, processed_events, processing_timeout)
        self.repository = repository or SearchRepository(db)

    @property
    def name(self) -> str:
        return ConsumerName.SEARCH.value

    @property
    def routing_keys(self) -> list[str]:
        return [EventType.POST_CREATED.value, EventType.POST_DELETED.value]

    async def apply(self, conn: Connection, event: PostEvent) -> None:
        payload = event.payload
        await self.repository.lock_post(conn, payload.post_id)

        if isinstance(event, PostCreated):
            indexed = await self.repository.upsert(
                conn,
                post_id=payload.post_id,
                user_id=payload.user_id,
                title=payload.title,
                content=payload.content,
            )
            if indexed:
                await log_info(f"Пост {payload.post_id} проиндексирован", type_msg=TypeMsg.DEBUG)
            else:
                await log_info(
                    f"Пост {payload.post_id} уже удалён, индексация пропущена",
                    type_msg=TypeMsg.INFO,
                )
        elif isinstance(event, PostDeleted):
            await self.repository.delete_by_key(conn, payload.post_id)
            await log_info(f"Пост {payload.post_id} удалён из индекса", type_msg=TypeMsg.DEBUG)

    async def prune(self, retention: timedelta) -> int:
        removed = await super().prune(retention)
        return removed + await self.repository.prune_tombstones(retention)
