# tests/consumers/test_base_consumer.py
"""
Тесты базового алгоритма обработки сообщений EventConsumer.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from src.common.exceptions import PublishError, UnprocessableEventError
from src.consumers.base import EventConsumer
from src.infra.event_bus import OutcomeAction
from tests.conftest import (
    FakeDatabase,
    FakeProcessedEvents,
    make_delivery,
    make_post_created,
    make_post_deleted,
)


class RecordingConsumer(EventConsumer):
    """Консьюмер, записывающий применённые события в таблицу applied."""

    def __init__(self, *args, delay: float = 0.0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.delay = delay

    @property
    def name(self) -> str:
        return "recording"

    @property
    def routing_keys(self) -> list[str]:
        return ["post.created"]

    async def apply(self, conn: FakeDatabase, event) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        conn.tables["applied"][event.event_id] = event.payload.post_id


@pytest.fixture
async def consumer(mock_event_bus, fake_db, retry_policy, processed_events) -> RecordingConsumer:
    consumer = RecordingConsumer(
        mock_event_bus,
        fake_db,
        retry_policy,
        processed_events=processed_events,
        processing_timeout=1.0,
    )
    await consumer.start()
    return consumer


class TestStartStop:
    """Тесты подписки консьюмера."""

    @pytest.mark.asyncio
    async def test_start_subscribes_queue(self, consumer, mock_event_bus) -> None:
        """Проверяет подписку очереди social.<name> на routing keys."""
        mock_event_bus.subscribe.assert_awaited_once_with(
            queue_name="social.recording",
            routing_keys=["post.created"],
            handler=consumer.handle_delivery,
        )
        assert consumer.is_running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, consumer, mock_event_bus) -> None:
        await consumer.start()
        assert mock_event_bus.subscribe.await_count == 1

    @pytest.mark.asyncio
    async def test_stopped_consumer_requeues(self, consumer, fake_db) -> None:
        """Остановленный консьюмер возвращает сообщение в очередь."""
        await consumer.stop()

        outcome = await consumer.handle_delivery(make_delivery(make_post_created()))

        assert outcome.action is OutcomeAction.NACK
        assert outcome.requeue is True
        assert not fake_db.tables["applied"]


class TestSuccessAndDuplicates:
    """Тесты применения и дедупликации."""

    @pytest.mark.asyncio
    async def test_valid_event_is_applied_and_acked(self, consumer, fake_db) -> None:
        event = make_post_created(post_id="p1")

        outcome = await consumer.handle_delivery(make_delivery(event))

        assert outcome.is_ack
        assert fake_db.tables["applied"] == {event.event_id: "p1"}
        assert fake_db.commits == 1

    @pytest.mark.asyncio
    async def test_redelivery_is_acked_without_second_apply(self, consumer, fake_db) -> None:
        """Повторная доставка того же eventId подтверждается без изменений."""
        event = make_post_created()
        delivery = make_delivery(event)

        first = await consumer.handle_delivery(delivery)
        snapshot = dict(fake_db.tables["applied"])
        second = await consumer.handle_delivery(delivery)

        assert first.is_ack and second.is_ack
        assert second.reason == "duplicate"
        assert fake_db.tables["applied"] == snapshot
        assert fake_db.commits == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_apply_once(self, consumer, fake_db) -> None:
        """Две одновременные копии события применяются ровно один раз."""
        event = make_post_created()

        outcomes = await asyncio.gather(
            consumer.handle_delivery(make_delivery(event)),
            consumer.handle_delivery(make_delivery(event)),
        )

        assert all(o.is_ack for o in outcomes)
        assert sorted(o.reason or "" for o in outcomes) == ["", "duplicate"]
        assert len(fake_db.tables["applied"]) == 1

    @pytest.mark.asyncio
    async def test_unhandled_event_type_is_acked(self, consumer, fake_db) -> None:
        """Событие вне routing keys консьюмера подтверждается без изменений."""
        outcome = await consumer.handle_delivery(make_delivery(make_post_deleted()))

        assert outcome.is_ack
        assert outcome.reason == "not_handled"
        assert not fake_db.tables["applied"]


class TestPoisonMessages:
    """Тесты изоляции невалидных сообщений."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"not json at all",
            json.dumps({"eventType": "post.created", "version": 1, "payload": {}}).encode(),
            json.dumps({
                "eventId": "e1",
                "eventType": "post.created",
                "version": 2,
                "emittedAt": "2024-01-15T12:00:00Z",
                "payload": {"postId": "p1", "userId": "u1", "title": "t", "content": "c"},
            }).encode(),
            json.dumps({
                "eventId": "e1",
                "eventType": "post.archived",
                "version": 1,
                "emittedAt": "2024-01-15T12:00:00Z",
                "payload": {"postId": "p1"},
            }).encode(),
        ],
        ids=["garbage", "missing-fields", "unsupported-version", "unknown-type"],
    )
    async def test_poison_message_is_dead_lettered(self, consumer, fake_db, body: bytes) -> None:
        """Невалидный конверт: nack без requeue, проекция не меняется."""
        outcome = await consumer.handle_delivery(make_delivery(body))

        assert outcome.action is OutcomeAction.NACK
        assert outcome.requeue is False
        assert fake_db.commits == 0
        assert not fake_db.tables["processed_events"]

    @pytest.mark.asyncio
    async def test_poison_does_not_block_next_message(self, consumer, fake_db) -> None:
        await consumer.handle_delivery(make_delivery(b"{}"))
        event = make_post_created(post_id="p2")

        outcome = await consumer.handle_delivery(make_delivery(event))

        assert outcome.is_ack
        assert fake_db.tables["applied"][event.event_id] == "p2"


class TestTransientFailures:
    """Тесты ограниченного ретрая."""

    @pytest.mark.asyncio
    async def test_store_failure_requeues(self, consumer, fake_db) -> None:
        fake_db.fail_next(ConnectionRefusedError("db down"))

        outcome = await consumer.handle_delivery(make_delivery(make_post_created()))

        assert outcome.action is OutcomeAction.NACK
        assert outcome.requeue is True
        assert not fake_db.tables["processed_events"]

    @pytest.mark.asyncio
    async def test_failure_rolls_back_dedup_marker(self, consumer, fake_db) -> None:
        """Сбой внутри транзакции не оставляет отметку: повтор применит событие."""
        event = make_post_created()
        original_apply = consumer.apply

        async def failing_apply(conn, ev):
            await original_apply(conn, ev)
            raise OSError("disk full")

        consumer.apply = failing_apply
        outcome = await consumer.handle_delivery(make_delivery(event))

        assert outcome.requeue is True
        assert not fake_db.tables["processed_events"]
        assert not fake_db.tables["applied"]

        consumer.apply = original_apply
        retry = await consumer.handle_delivery(make_delivery(event))

        assert retry.is_ack
        assert fake_db.tables["applied"] == {event.event_id: "p1"}

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, consumer, fake_db) -> None:
        fake_db.fail_next(ConnectionRefusedError("db down"), times=2)
        delivery = make_delivery(make_post_created())

        outcomes = [await consumer.handle_delivery(delivery) for _ in range(3)]

        assert [o.requeue for o in outcomes[:2]] == [True, True]
        assert outcomes[2].is_ack
        assert len(fake_db.tables["applied"]) == 1

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted_goes_to_dead_letter(
        self, consumer, fake_db, mock_event_bus,
    ) -> None:
        """После max_retries повторов сообщение уходит в DLQ и больше не доставляется."""
        fake_db.fail_next(ConnectionRefusedError("db down"), times=10)
        delivery = make_delivery(make_post_created())

        outcomes = [await consumer.handle_delivery(delivery) for _ in range(4)]

        assert [o.requeue for o in outcomes[:3]] == [True, True, True]
        assert outcomes[3].is_ack
        assert outcomes[3].reason == "dead_lettered"
        mock_event_bus.publish_dead_letter.assert_awaited_once()
        _, kwargs = mock_event_bus.publish_dead_letter.await_args
        assert kwargs["attempts"] == 4
        assert not fake_db.tables["applied"]

    @pytest.mark.asyncio
    async def test_dead_letter_publish_failure_falls_back_to_reject(
        self, consumer, fake_db, mock_event_bus,
    ) -> None:
        """Если явная публикация в DLQ не удалась, сообщение отклоняется без requeue."""
        mock_event_bus.publish_dead_letter = AsyncMock(side_effect=PublishError("closed"))
        fake_db.fail_next(ConnectionRefusedError("db down"), times=10)
        delivery = make_delivery(make_post_created())

        outcomes = [await consumer.handle_delivery(delivery) for _ in range(4)]

        assert outcomes[3].action is OutcomeAction.NACK
        assert outcomes[3].requeue is False

    @pytest.mark.asyncio
    async def test_processing_timeout_counts_as_failure(
        self, mock_event_bus, fake_db, retry_policy, processed_events,
    ) -> None:
        """Превышение таймаута обработки: nack с requeue и откат транзакции."""
        consumer = RecordingConsumer(
            mock_event_bus,
            fake_db,
            retry_policy,
            processed_events=processed_events,
            processing_timeout=0.05,
            delay=1.0,
        )
        await consumer.start()

        outcome = await consumer.handle_delivery(make_delivery(make_post_created()))

        assert outcome.action is OutcomeAction.NACK
        assert outcome.requeue is True
        assert fake_db.rollbacks == 1
        assert not fake_db.tables["processed_events"]


class TestPermanentFailures:
    """Тесты постоянных ошибок применения."""

    @pytest.mark.asyncio
    async def test_unprocessable_event_goes_to_dead_letter_at_once(
        self, consumer, fake_db, mock_event_bus, mock_redis,
    ) -> None:
        """Постоянная ошибка: без повторов, сразу DLQ, транзакция откатывается."""
        async def broken_apply(conn, ev):
            conn.tables["applied"][ev.event_id] = ev.payload.post_id
            raise UnprocessableEventError("битая ссылка на объект")

        consumer.apply = broken_apply
        outcome = await consumer.handle_delivery(make_delivery(make_post_created()))

        assert outcome.is_ack
        assert outcome.reason == "dead_lettered"
        _, kwargs = mock_event_bus.publish_dead_letter.await_args
        assert kwargs["attempts"] == 1
        assert kwargs["reason"] == "битая ссылка на объект"
        mock_redis.increment.assert_not_awaited()
        assert not fake_db.tables["applied"]
        assert not fake_db.tables["processed_events"]
