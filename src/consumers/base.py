# src/consumers/base.py
"""
Базовый класс консьюмеров событий постов.

Алгоритм обработки сообщения:
1. Десериализация конверта; невалидное сообщение → nack без requeue (DLQ).
2. В одной транзакции: отметка eventId как применённого и изменение проекции.
   Повторная доставка уже применённого события → ack без изменений.
3. ack только после commit.
4. Временная ошибка или таймаут → nack(requeue=True), после исчерпания
   бюджета повторов → публикация в DLQ и ack.
5. Постоянная ошибка применения (UnprocessableEventError) → DLQ сразу.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import timedelta

import asyncpg
from asyncpg import Connection

from src.common.constants import TypeMsg
from src.common.exceptions import (
    DeserializationError,
    DuplicateEventError,
    ProjectionWriteError,
    PublishError,
    UnprocessableEventError,
)
from src.common.logger import log_debug, log_error, log_info, log_warning
from src.consumers.idempotency import ProcessedEventRepository
from src.consumers.retry import RetryPolicy
from src.infra.database import CONNECTION_ERRORS, DatabaseManager
from src.infra.event_bus import Delivery, EventBus, Outcome
from src.shared.events import PostCreated, PostDeleted, parse_envelope

PostEvent = PostCreated | PostDeleted

# Ошибки хранилища, которые считаются временными
STORE_ERRORS: tuple[type[BaseException], ...] = (asyncpg.PostgresError, *CONNECTION_ERRORS)


class EventConsumer(ABC):
    """
    Базовый класс для консьюмеров.
    Подписывает очередь на routing keys и применяет события к своей проекции.
    """

    def __init__(
        self,
        event_bus: EventBus,
        db: DatabaseManager,
        retry_policy: RetryPolicy,
        processed_events: ProcessedEventRepository | None = None,
        processing_timeout: float = 30.0,
    ) -> None:
        self.event_bus = event_bus
        self.db = db
        self.retry_policy = retry_policy
        self.processed_events = processed_events or ProcessedEventRepository(db)
        self.processing_timeout = processing_timeout
        self._running = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя консьюмера; область видимости дедупликации."""

    @property
    @abstractmethod
    def routing_keys(self) -> list[str]:
        """Routing keys, на которые подписана очередь."""

    @property
    def queue_name(self) -> str:
        return f"social.{self.name}"

    @abstractmethod
    async def apply(self, conn: Connection, event: PostEvent) -> None:
        """
        Применяет событие к проекции внутри транзакции conn.
        Должно сходиться при любом порядке и повторе событий.
        """

    async def prune(self, retention: timedelta) -> int:
        """Удаляет устаревшие отметки дедупликации."""
        return await self.processed_events.prune(self.name, retention)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Регистрирует подписку на шине."""
        if self._running:
            return

        self._running = True
        await self.event_bus.subscribe(
            queue_name=self.queue_name,
            routing_keys=self.routing_keys,
            handler=self.handle_delivery,
        )
        await log_info(f"Консьюмер {self.name} запущен", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await log_info(f"Консьюмер {self.name} остановлен", type_msg=TypeMsg.INFO)

    # =========================================================================
    # ОБРАБОТКА СООБЩЕНИЯ
    # =========================================================================

    async def handle_delivery(self, delivery: Delivery) -> Outcome:
        """Обрабатывает одно сообщение и возвращает решение для брокера."""
        if not self._running:
            return Outcome.nack(requeue=True, reason="consumer_stopped")

        try:
            event = parse_envelope(delivery.body)
        except DeserializationError as e:
            await log_error(
                f"[{self.name}] Ядовитое сообщение {delivery.message_id} отправлено в DLQ: {e.message}",
                extra={"routing_key": delivery.routing_key, "details": e.details},
            )
            return Outcome.nack(requeue=False, reason="deserialization_error")

        if event.event_type not in self.routing_keys:
            await log_warning(
                f"[{self.name}] Событие {event.event_type} не обрабатывается этим консьюмером",
            )
            return Outcome.ack(reason="not_handled")

        try:
            await asyncio.wait_for(self._apply_once(event), timeout=self.processing_timeout)
        except DuplicateEventError:
            await log_debug(f"[{self.name}] Повторная доставка {event.event_id} пропущена")
            return Outcome.ack(reason="duplicate")
        except UnprocessableEventError as e:
            return await self._dead_letter(delivery, event, e.message, attempts=1)
        except ProjectionWriteError as e:
            return await self._on_failure(delivery, event, e.message)
        except asyncio.TimeoutError:
            return await self._on_failure(
                delivery, event, f"таймаут обработки {self.processing_timeout}с",
            )

        await self.retry_policy.reset(self.name, event.event_id)
        await log_debug(
            f"[{self.name}] Событие {event.event_type} {event.event_id} применено",
            extra={"post_id": event.payload.post_id},
        )
        return Outcome.ack()

    async def _apply_once(self, event: PostEvent) -> None:
        """
        Отметка и изменение проекции в одной транзакции.

        Raises:
            DuplicateEventError: событие уже применено
            ProjectionWriteError: временный сбой хранилища
            UnprocessableEventError: событие нельзя применить, повтор не поможет
        """
        try:
            async with self.db.transaction() as conn:
                await self.processed_events.mark_processed(conn, self.name, event)
                await self.apply(conn, event)
        except STORE_ERRORS as e:
            raise ProjectionWriteError(f"Ошибка записи проекции {self.name}: {e!r}") from e

    async def _on_failure(self, delivery: Delivery, event: PostEvent, reason: str) -> Outcome:
        """Решает: повторить доставку или отправить сообщение в DLQ."""
        attempts = await self.retry_policy.record_failure(self.name, event.event_id)

        if not self.retry_policy.is_exhausted(attempts):
            await log_warning(
                f"[{self.name}] Ошибка обработки {event.event_id} "
                f"(попытка {attempts}/{self.retry_policy.max_retries + 1}): {reason}",
            )
            return Outcome.nack(requeue=True, reason=reason)

        return await self._dead_letter(delivery, event, reason, attempts)

    async def _dead_letter(
        self,
        delivery: Delivery,
        event: PostEvent,
        reason: str,
        attempts: int,
    ) -> Outcome:
        await log_error(
            f"[{self.name}] Событие {event.event_id} отправлено в DLQ после {attempts} попыток: {reason}",
            extra={"event_type": event.event_type},
        )
        await self.retry_policy.reset(self.name, event.event_id)

        try:
            await self.event_bus.publish_dead_letter(delivery, reason=reason, attempts=attempts)
        except PublishError as e:
            # DLQ через x-dead-letter-exchange очереди
            await log_warning(f"[{self.name}] Явная публикация в DLQ не удалась: {e.message}")
            return Outcome.nack(requeue=False, reason=reason)

        return Outcome.ack(reason="dead_lettered")
