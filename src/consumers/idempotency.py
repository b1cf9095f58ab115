# src/consumers/idempotency.py
"""
Учёт применённых событий (дедупликация по eventId).

Отметка делается в той же транзакции, что и изменение проекции:
INSERT ... ON CONFLICT DO NOTHING по первичному ключу (consumer, event_id).
Две параллельные копии одного события сериализуются на уникальном индексе,
вторая получает конфликт и пропускается.
"""

from __future__ import annotations

from datetime import timedelta

from asyncpg import Connection

from src.common.exceptions import DuplicateEventError
from src.infra.database import DatabaseManager
from src.shared.events.base import EventEnvelope


def parse_command_count(status: str) -> int:
    """Извлекает число строк из статуса asyncpg ('DELETE 3' → 3)."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


class ProcessedEventRepository:
    """Репозиторий таблицы processed_events."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def mark_processed(
        self,
        conn: Connection,
        consumer: str,
        event: EventEnvelope,
    ) -> None:
        """
        Отмечает событие как применённое в текущей транзакции.

        Raises:
            DuplicateEventError: событие уже применялось этим консьюмером
        """
        inserted = await conn.fetchval(
            """
            INSERT INTO processed_events (consumer, event_id, event_type)
            VALUES ($1, $2, $3)
            ON CONFLICT (consumer, event_id) DO NOTHING
            RETURNING event_id
            """,
            consumer,
            event.event_id,
            event.event_type,
        )
        if inserted is None:
            raise DuplicateEventError(
                f"Событие {event.event_id} уже применено консьюмером {consumer}",
            )

    async def prune(self, consumer: str, retention: timedelta) -> int:
        """
        Удаляет отметки старше retention.
        Окно должно превышать максимальную задержку повторной доставки брокером,
        иначе поздняя копия события будет применена повторно.
        """
        status = await self._db.execute(
            """
            DELETE FROM processed_events
            WHERE consumer = $1 AND processed_at < NOW() - $2::interval
            """,
            consumer,
            retention,
        )
        return parse_command_count(status)
