# src/shared/__init__.py
"""
Общий код между микросервисами.

Модули:
- events: схемы событий RabbitMQ (конверт и варианты post.*)
- models: общие DTO и Pydantic-модели
"""

__all__: list[str] = []
