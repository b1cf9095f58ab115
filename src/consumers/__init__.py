"""
Консьюмеры событий постов.
Базовый алгоритм обработки, политика повторов, дедупликация и запускалка.
"""

from src.consumers.base import EventConsumer
from src.consumers.idempotency import ProcessedEventRepository
from src.consumers.retry import RetryPolicy

__all__ = ["EventConsumer", "ProcessedEventRepository", "RetryPolicy"]
