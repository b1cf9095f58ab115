# src/config/__init__.py
"""
Конфигурация сервисов.
Источник: config/config.json + переменные окружения.
"""

from src.config.loader import Settings, get_settings, get_project_root, settings

__all__ = ["Settings", "get_settings", "get_project_root", "settings"]
