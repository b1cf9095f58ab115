# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class EventType(str, Enum):
    """Типы событий (routing keys) на общем topic exchange."""
    POST_CREATED = "post.created"
    POST_DELETED = "post.deleted"


class ConsumerName(str, Enum):
    """Имена консьюмеров (область видимости дедупликации)."""
    SEARCH = "search"
    MEDIA = "media"


class HealthState(str, Enum):
    """Состояния зависимостей в health check."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# Заголовок, через который gateway передаёт ID аутентифицированного пользователя
USER_ID_HEADER = "X-User-Id"

# Версия формата конверта событий
ENVELOPE_VERSION = 1
