# src/shared/events/post_events.py
"""
События домена постов.

Закрытый набор вариантов: тип события однозначно определяет форму payload.
Валидация выполняется на границе консьюмера через parse_envelope().
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError

from src.common.exceptions import DeserializationError
from src.shared.events.base import EventEnvelope, WireModel


class PostCreatedPayload(WireModel):
    """Данные созданного поста."""

    post_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    title: str
    content: str
    media_ids: list[str] = Field(default_factory=list)


class PostDeletedPayload(WireModel):
    """Данные удалённого поста."""

    post_id: str = Field(..., min_length=1)
    media_ids: list[str] = Field(default_factory=list)


class PostCreated(EventEnvelope):
    """Событие: пост создан."""

    event_type: Literal["post.created"] = "post.created"
    payload: PostCreatedPayload


class PostDeleted(EventEnvelope):
    """Событие: пост удалён."""

    event_type: Literal["post.deleted"] = "post.deleted"
    payload: PostDeletedPayload


PostEvent = Annotated[Union[PostCreated, PostDeleted], Field(discriminator="event_type")]

_post_event_adapter: TypeAdapter[PostEvent] = TypeAdapter(PostEvent)


def parse_envelope(body: bytes | str) -> PostCreated | PostDeleted:
    """
    Десериализует тело сообщения в событие.

    Raises:
        DeserializationError: невалидный JSON, неизвестный eventType,
            неподдерживаемая версия или payload не той формы
    """
    try:
        return _post_event_adapter.validate_json(body)
    except ValidationError as e:
        raise DeserializationError(
            f"Невалидный конверт события: {e.error_count()} ошибок",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e
