# src/common/exceptions.py
"""
Иерархия исключений приложения.

Брокер:
- BrokerConnectionError: брокер недоступен или отказал в авторизации
- PublishError: канал закрыт или брокер не подтвердил публикацию

Консьюмеры:
- DeserializationError: ядовитое сообщение, в ретрай не отправляется
- ProjectionWriteError: временный сбой локального хранилища, ретраится
- UnprocessableEventError: событие нельзя применить, сразу в DLQ
- DuplicateEventError: событие уже применено (не ошибка, короткое замыкание)

HTTP-слой:
- NotFoundError, ForbiddenError, RateLimitExceededError
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Базовое исключение приложения."""

    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BrokerConnectionError(AppError):
    """Не удалось подключиться к RabbitMQ."""

    error_code = "broker_unavailable"
    status_code = 503


class PublishError(AppError):
    """Не удалось опубликовать событие."""

    error_code = "publish_failed"
    status_code = 503


class DeserializationError(AppError):
    """Тело сообщения не соответствует схеме конверта."""

    error_code = "invalid_envelope"
    status_code = 400


class ProjectionWriteError(AppError):
    """Временная ошибка записи в проекцию."""

    error_code = "projection_write_failed"


class UnprocessableEventError(AppError):
    """Постоянная ошибка применения события, повтор не поможет."""

    error_code = "unprocessable_event"


class DuplicateEventError(AppError):
    """Событие уже было применено этим консьюмером."""

    error_code = "duplicate_event"
    status_code = 200


class StorageError(AppError):
    """Ошибка объектного хранилища медиа."""

    error_code = "storage_error"


class InvalidObjectKeyError(StorageError):
    """public_id указывает за пределы хранилища."""

    error_code = "invalid_object_key"


class NotFoundError(AppError):
    """Запрошенная сущность не найдена."""

    error_code = "not_found"
    status_code = 404


class ForbiddenError(AppError):
    """Операция запрещена для текущего пользователя."""

    error_code = "forbidden"
    status_code = 403


class RateLimitExceededError(AppError):
    """Превышен лимит запросов."""

    error_code = "rate_limited"
    status_code = 429
