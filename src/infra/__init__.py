# src/infra/__init__.py
"""
Инфраструктурный слой.
Клиенты PostgreSQL, Redis и RabbitMQ; создаются явно и внедряются в сервисы.
"""

from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient
from src.infra.event_bus import Delivery, EventBus, Outcome

__all__ = [
    "DatabaseManager",
    "RedisClient",
    "EventBus",
    "Delivery",
    "Outcome",
]
