"""
Общие утилиты, константы, исключения и логгер.
"""

from src.common.logger import get_logger, log_info, log_error, log_warning
from src.common.constants import TypeMsg, EventType, ConsumerName
from src.common.exceptions import (
    AppError,
    BrokerConnectionError,
    PublishError,
    DeserializationError,
    ProjectionWriteError,
    DuplicateEventError,
)

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "TypeMsg",
    "EventType",
    "ConsumerName",
    "AppError",
    "BrokerConnectionError",
    "PublishError",
    "DeserializationError",
    "ProjectionWriteError",
    "DuplicateEventError",
]
