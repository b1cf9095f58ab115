# src/services/__init__.py
"""
Микросервисы приложения.

Архитектура:
- Каждый сервис является отдельным FastAPI-приложением
- Общая PostgreSQL, у каждого сервиса свои таблицы
- Коммуникация через RabbitMQ (события post.*)
- Redis для кэширования, rate limit и счётчиков повторов

Сервисы:
- posts: источник истины постов, публикует post.created / post.deleted
- search: полнотекстовый индекс постов, консьюмер search
- media: метаданные медиа, консьюмер media удаляет медиа удалённых постов
"""

__all__: list[str] = []
