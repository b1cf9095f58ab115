# src/services/media/storage.py
"""
Хранилище объектов медиа.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from src.common.exceptions import InvalidObjectKeyError, StorageError


class MediaStorage(ABC):
    """Объектное хранилище медиа. Удаление идемпотентно."""

    @abstractmethod
    async def delete(self, public_id: str) -> bool:
        """
        Удаляет объект.

        Returns:
            False, если объекта уже нет (это не ошибка)

        Raises:
            InvalidObjectKeyError: public_id не может быть объектом хранилища
            StorageError: хранилище недоступно
        """


class FileSystemMediaStorage(MediaStorage):
    """Объекты лежат файлами в MEDIA_ROOT, public_id: относительный путь."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def path_for(self, public_id: str) -> Path:
        path = (self.root / public_id).resolve()
        if not path.is_relative_to(self.root):
            raise InvalidObjectKeyError(f"public_id вне хранилища: {public_id}")
        return path

    async def delete(self, public_id: str) -> bool:
        path = self.path_for(public_id)
        try:
            return await asyncio.to_thread(self._unlink, path)
        except OSError as e:
            raise StorageError(f"Не удалось удалить {public_id}: {e!r}") from e

    @staticmethod
    def _unlink(path: Path) -> bool:
        if not path.exists():
            return False
        path.unlink(missing_ok=True)
        return True
