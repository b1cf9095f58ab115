# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные и адреса сервисов переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации (можно переопределить через CONFIG_PATH)."""
    override = os.getenv("CONFIG_PATH")
    if override:
        return Path(override)
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "social_backend"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class DeploymentSettings(BaseModel):
    """Адреса и порты микросервисов."""
    POST_SERVICE_HOST: str = "post_service"
    POST_SERVICE_PORT: int = 3002
    MEDIA_SERVICE_HOST: str = "media_service"
    MEDIA_SERVICE_PORT: int = 3003
    SEARCH_SERVICE_HOST: str = "search_service"
    SEARCH_SERVICE_PORT: int = 3004


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "social"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 30
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "social"
    REDIS_MAX_CONNECTIONS: int = 50

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RedisTTLSettings(BaseModel):
    """TTL кэша (секунды)."""
    POST_TTL: int = 3600
    POSTS_LIST_TTL: int = 300
    SEARCH_RESULTS_TTL: int = 60
    RETRY_COUNTER_TTL: int = 86400


class RabbitMQSettings(BaseModel):
    """Настройки RabbitMQ."""
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "social.events"
    RABBITMQ_DLX_EXCHANGE: str = "social.events.dlx"
    RABBITMQ_PREFETCH_COUNT: int = 10
    RABBITMQ_CONNECT_ATTEMPTS: int = 5
    RABBITMQ_BACKOFF_BASE: float = 0.5
    RABBITMQ_BACKOFF_MAX: float = 30.0
    RABBITMQ_OPERATION_TIMEOUT: float = 10.0

    @field_validator("RABBITMQ_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        env_pass = os.getenv("RABBITMQ_PASSWORD", "")
        if env_pass:
            return env_pass
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к RabbitMQ."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class ConsumerSettings(BaseModel):
    """Политика обработки событий консьюмерами."""
    MAX_RETRIES: int = 5
    PROCESSING_TIMEOUT: float = 30.0
    DEDUP_RETENTION_HOURS: int = 168
    PRUNE_INTERVAL_SECONDS: int = 3600
    WATCHDOG_INTERVAL_SECONDS: float = 1.0


class RateLimitSettings(BaseModel):
    """Ограничение частоты запросов на запись."""
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 10


class MediaSettings(BaseModel):
    """Настройки хранилища медиа."""
    MEDIA_ROOT: str = "media"
    MAX_MEDIA_PER_POST: int = 10


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    redis_ttl: RedisTTLSettings = Field(default_factory=RedisTTLSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    consumers: ConsumerSettings = Field(default_factory=ConsumerSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса переопределяются из переменных окружения.
        """
        data = load_config_json()

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "social_backend"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "all")),
            ),
            deployment=DeploymentSettings(
                POST_SERVICE_HOST=os.getenv("POST_SERVICE_HOST", data.get("POST_SERVICE_HOST", "post_service")),
                POST_SERVICE_PORT=int(os.getenv("POST_SERVICE_PORT", data.get("POST_SERVICE_PORT", 3002))),
                MEDIA_SERVICE_HOST=os.getenv("MEDIA_SERVICE_HOST", data.get("MEDIA_SERVICE_HOST", "media_service")),
                MEDIA_SERVICE_PORT=int(os.getenv("MEDIA_SERVICE_PORT", data.get("MEDIA_SERVICE_PORT", 3003))),
                SEARCH_SERVICE_HOST=os.getenv("SEARCH_SERVICE_HOST", data.get("SEARCH_SERVICE_HOST", "search_service")),
                SEARCH_SERVICE_PORT=int(os.getenv("SEARCH_SERVICE_PORT", data.get("SEARCH_SERVICE_PORT", 3004))),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=data.get("LOG_LEVEL", "DEBUG"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "json"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
                LOG_BACKUP_COUNT=data.get("LOG_BACKUP_COUNT", 5),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "social")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 2),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 10),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 30),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "social"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            redis_ttl=RedisTTLSettings(
                POST_TTL=data.get("POST_TTL", 3600),
                POSTS_LIST_TTL=data.get("POSTS_LIST_TTL", 300),
                SEARCH_RESULTS_TTL=data.get("SEARCH_RESULTS_TTL", 60),
                RETRY_COUNTER_TTL=data.get("RETRY_COUNTER_TTL", 86400),
            ),
            rabbitmq=RabbitMQSettings(
                RABBITMQ_HOST=os.getenv("RABBITMQ_HOST", data.get("RABBITMQ_HOST", "localhost")),
                RABBITMQ_PORT=int(os.getenv("RABBITMQ_PORT", data.get("RABBITMQ_PORT", 5672))),
                RABBITMQ_USER=os.getenv("RABBITMQ_USER", data.get("RABBITMQ_USER", "guest")),
                RABBITMQ_PASSWORD=os.getenv("RABBITMQ_PASSWORD", data.get("RABBITMQ_PASSWORD", "guest")),
                RABBITMQ_VHOST=data.get("RABBITMQ_VHOST", "/"),
                RABBITMQ_EXCHANGE=data.get("RABBITMQ_EXCHANGE", "social.events"),
                RABBITMQ_DLX_EXCHANGE=data.get("RABBITMQ_DLX_EXCHANGE", "social.events.dlx"),
                RABBITMQ_PREFETCH_COUNT=data.get("RABBITMQ_PREFETCH_COUNT", 10),
                RABBITMQ_CONNECT_ATTEMPTS=data.get("RABBITMQ_CONNECT_ATTEMPTS", 5),
                RABBITMQ_BACKOFF_BASE=data.get("RABBITMQ_BACKOFF_BASE", 0.5),
                RABBITMQ_BACKOFF_MAX=data.get("RABBITMQ_BACKOFF_MAX", 30.0),
                RABBITMQ_OPERATION_TIMEOUT=data.get("RABBITMQ_OPERATION_TIMEOUT", 10.0),
            ),
            consumers=ConsumerSettings(
                MAX_RETRIES=data.get("CONSUMER_MAX_RETRIES", 5),
                PROCESSING_TIMEOUT=data.get("CONSUMER_PROCESSING_TIMEOUT", 30.0),
                DEDUP_RETENTION_HOURS=data.get("DEDUP_RETENTION_HOURS", 168),
                PRUNE_INTERVAL_SECONDS=data.get("PRUNE_INTERVAL_SECONDS", 3600),
                WATCHDOG_INTERVAL_SECONDS=data.get("WATCHDOG_INTERVAL_SECONDS", 1.0),
            ),
            rate_limit=RateLimitSettings(
                RATE_LIMIT_WINDOW_SECONDS=data.get("RATE_LIMIT_WINDOW_SECONDS", 60),
                RATE_LIMIT_MAX_REQUESTS=data.get("RATE_LIMIT_MAX_REQUESTS", 10),
            ),
            media=MediaSettings(
                MEDIA_ROOT=os.getenv("MEDIA_ROOT", data.get("MEDIA_ROOT", "media")),
                MAX_MEDIA_PER_POST=data.get("MAX_MEDIA_PER_POST", 10),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
