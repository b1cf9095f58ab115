# src/services/media/repository.py
"""
Репозиторий метаданных медиа.
"""

from __future__ import annotations

from asyncpg import Connection

from src.consumers.idempotency import parse_command_count
from src.infra.database import DatabaseManager
from src.shared.models.media import MediaDTO

MEDIA_COLUMNS = "media_id, post_id, user_id, public_id, storage_url, mime_type, created_at"


class MediaRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def create(
        self,
        media_id: str,
        user_id: str,
        public_id: str,
        storage_url: str,
        mime_type: str | None = None,
        post_id: str | None = None,
    ) -> MediaDTO:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO media (media_id, post_id, user_id, public_id, storage_url, mime_type)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {MEDIA_COLUMNS}
            """,
            media_id,
            post_id,
            user_id,
            public_id,
            storage_url,
            mime_type,
        )
        return MediaDTO.model_validate(dict(row))

    async def find_by_key(self, media_id: str) -> MediaDTO | None:
        row = await self.db.fetchrow(
            f"SELECT {MEDIA_COLUMNS} FROM media WHERE media_id = $1",
            media_id,
        )
        return MediaDTO.model_validate(dict(row)) if row else None

    async def list_by_user(self, user_id: str) -> list[MediaDTO]:
        rows = await self.db.fetch(
            f"SELECT {MEDIA_COLUMNS} FROM media WHERE user_id = $1 ORDER BY created_at DESC",
            user_id,
        )
        return [MediaDTO.model_validate(dict(row)) for row in rows]

    # =========================================================================
    # ЗАПИСЬ В ТРАНЗАКЦИИ КОНСЬЮМЕРА
    # =========================================================================

    async def attach_to_post(self, conn: Connection, post_id: str, media_ids: list[str]) -> int:
        """Привязывает медиа к посту. Медиа другого поста не трогает."""
        if not media_ids:
            return 0
        status = await conn.execute(
            """
            UPDATE media SET post_id = $1
            WHERE media_id = ANY($2::text[]) AND (post_id IS NULL OR post_id = $1)
            """,
            post_id,
            media_ids,
        )
        return parse_command_count(status)

    async def find_for_post(
        self,
        conn: Connection,
        post_id: str,
        media_ids: list[str],
    ) -> list[MediaDTO]:
        """
        Медиа поста: привязанные к нему и ещё не привязанные из события.
        Медиа другого поста не выбираются, даже если перечислены в событии.
        """
        rows = await conn.fetch(
            f"""
            SELECT {MEDIA_COLUMNS} FROM media
            WHERE post_id = $1
               OR (post_id IS NULL AND media_id = ANY($2::text[]))
            ORDER BY media_id
            FOR UPDATE
            """,
            post_id,
            media_ids,
        )
        return [MediaDTO.model_validate(dict(row)) for row in rows]

    async def delete_by_key(self, conn: Connection, media_id: str) -> bool:
        status = await conn.execute("DELETE FROM media WHERE media_id = $1", media_id)
        return parse_command_count(status) > 0
