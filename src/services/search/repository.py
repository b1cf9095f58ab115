# src/services/search/repository.py
"""
Репозиторий поискового индекса.

Запись выполняется консьюмером внутри его транзакции (conn), чтение
через пул. Удалённые посты помечаются tombstone: post.created, пришедший
после post.deleted, не воскрешает запись.
"""

from __future__ import annotations

from datetime import timedelta

from asyncpg import Connection

from src.consumers.idempotency import parse_command_count
from src.infra.database import DatabaseManager
from src.shared.models.search import SearchPostDTO

SEARCH_COLUMNS = "post_id, user_id, title, content, indexed_at"


class SearchRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    # =========================================================================
    # ЗАПИСЬ (в транзакции консьюмера)
    # =========================================================================

    async def lock_post(self, conn: Connection, post_id: str) -> None:
        """Сериализует конкурентные события одного поста до конца транзакции."""
        await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", post_id)

    async def upsert(
        self,
        conn: Connection,
        post_id: str,
        user_id: str,
        title: str,
        content: str,
    ) -> bool:
        """
        Создаёт или перезаписывает запись индекса.

        Returns:
            False, если пост уже удалён (есть tombstone) и запись не создана
        """
        inserted = await conn.fetchval(
            """
            INSERT INTO search_posts (post_id, user_id, title, content)
            SELECT $1, $2, $3, $4
            WHERE NOT EXISTS (SELECT 1 FROM search_tombstones WHERE post_id = $1)
            ON CONFLICT (post_id) DO UPDATE
                SET user_id = EXCLUDED.user_id,
                    title = EXCLUDED.title,
                    content = EXCLUDED.content,
                    indexed_at = NOW()
            RETURNING post_id
            """,
            post_id,
            user_id,
            title,
            content,
        )
        return inserted is not None

    async def delete_by_key(self, conn: Connection, post_id: str) -> bool:
        """Удаляет запись индекса и ставит tombstone. Повтор безопасен."""
        status = await conn.execute("DELETE FROM search_posts WHERE post_id = $1", post_id)
        await conn.execute(
            """
            INSERT INTO search_tombstones (post_id)
            VALUES ($1)
            ON CONFLICT (post_id) DO NOTHING
            """,
            post_id,
        )
        return parse_command_count(status) > 0

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def find_by_key(self, post_id: str) -> SearchPostDTO | None:
        row = await self.db.fetchrow(
            f"SELECT {SEARCH_COLUMNS} FROM search_posts WHERE post_id = $1",
            post_id,
        )
        return SearchPostDTO.model_validate(dict(row)) if row else None

    async def search(self, query: str, limit: int = 10) -> list[SearchPostDTO]:
        """Полнотекстовый поиск по заголовку и тексту, новые первыми."""
        rows = await self.db.fetch(
            f"""
            SELECT {SEARCH_COLUMNS} FROM search_posts
            WHERE to_tsvector('simple', title || ' ' || content)
                  @@ plainto_tsquery('simple', $1)
            ORDER BY indexed_at DESC
            LIMIT $2
            """,
            query,
            limit,
        )
        return [SearchPostDTO.model_validate(dict(row)) for row in rows]

    async def prune_tombstones(self, retention: timedelta) -> int:
        status = await self.db.execute(
            "DELETE FROM search_tombstones WHERE deleted_at < NOW() - $1::interval",
            retention,
        )
        return parse_command_count(status)
