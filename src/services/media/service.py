# src/services/media/service.py
"""
Регистрация и выдача метаданных медиа.
"""

from __future__ import annotations

from uuid import uuid4

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.services.media.repository import MediaRepository
from src.shared.models.media import MediaDTO, RegisterMediaRequest


class MediaService:
    def __init__(self, repository: MediaRepository) -> None:
        self._repository = repository

    async def register_media(self, user_id: str, request: RegisterMediaRequest) -> MediaDTO:
        """Сохраняет метаданные уже загруженного объекта."""
        media = await self._repository.create(
            media_id=str(uuid4()),
            user_id=user_id,
            public_id=request.public_id,
            storage_url=request.storage_url,
            mime_type=request.mime_type,
            post_id=request.post_id,
        )
        await log_info(
            f"Медиа {media.media_id} зарегистрировано пользователем {user_id}",
            type_msg=TypeMsg.INFO,
        )
        return media

    async def list_media(self, user_id: str) -> list[MediaDTO]:
        return await self._repository.list_by_user(user_id)
