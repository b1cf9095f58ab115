# src/services/posts/publisher.py
"""
Публикация событий постов.

Публикация выполняется после commit записи. Ошибка публикации не
откатывает запись: она логируется и возвращается вызывающему как
предупреждение.
"""

from __future__ import annotations

from src.common.exceptions import PublishError
from src.common.logger import log_error
from src.infra.event_bus import EventBus
from src.shared.events import (
    EventEnvelope,
    PostCreated,
    PostCreatedPayload,
    PostDeleted,
    PostDeletedPayload,
)
from src.shared.models.post import PostDTO


class PostEventPublisher:
    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

    async def publish_post_created(self, post: PostDTO) -> str | None:
        """
        Returns:
            Текст предупреждения, если событие не опубликовано
        """
        event = PostCreated(
            payload=PostCreatedPayload(
                post_id=post.post_id,
                user_id=post.user_id,
                title=post.title,
                content=post.content,
                media_ids=post.media_ids,
            ),
        )
        return await self._publish(event, post.post_id)

    async def publish_post_deleted(self, post_id: str, media_ids: list[str]) -> str | None:
        event = PostDeleted(payload=PostDeletedPayload(post_id=post_id, media_ids=media_ids))
        return await self._publish(event, post_id)

    async def _publish(self, event: EventEnvelope, post_id: str) -> str | None:
        try:
            await self._event_bus.publish(event)
        except PublishError as e:
            await log_error(
                f"Событие {event.event_type} для поста {post_id} не опубликовано: {e.message}",
                extra={"event_id": event.event_id, "post_id": post_id},
            )
            return f"Событие {event.event_type} не опубликовано: поиск и медиа не получат изменение"
        return None
