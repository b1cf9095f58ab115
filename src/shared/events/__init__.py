# src/shared/events/__init__.py
"""
Схемы событий для RabbitMQ.

- post.created: пост создан (Post Service → Search, Media)
- post.deleted: пост удалён (Post Service → Search, Media)

Все события содержат eventId для дедупликации на стороне консьюмеров.
"""

from src.shared.events.base import EventEnvelope
from src.shared.events.post_events import (
    PostCreated,
    PostCreatedPayload,
    PostDeleted,
    PostDeletedPayload,
    PostEvent,
    parse_envelope,
)

__all__ = [
    "EventEnvelope",
    "PostCreated",
    "PostCreatedPayload",
    "PostDeleted",
    "PostDeletedPayload",
    "PostEvent",
    "parse_envelope",
]
