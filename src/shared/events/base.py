# src/shared/events/base.py
"""
Базовый конверт доменных событий.

Формат на проводе (JSON, camelCase):
    {"eventId": "...", "eventType": "post.created", "version": 1,
     "emittedAt": "2024-01-15T12:00:00Z", "payload": {...}}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.common.constants import ENVELOPE_VERSION


class WireModel(BaseModel):
    """Модель с camelCase-алиасами на проводе и snake_case в коде."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class EventEnvelope(WireModel):
    """
    Базовый класс для всех событий.

    event_id генерируется публикатором один раз и не меняется при
    повторных доставках, по нему консьюмеры делают дедупликацию.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    version: Literal[1] = ENVELOPE_VERSION
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        """Сериализует событие в JSON (camelCase)."""
        return self.model_dump_json(by_alias=True)

    def to_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")

    @property
    def routing_key(self) -> str:
        """Routing key на topic exchange совпадает с типом события."""
        return self.event_type
