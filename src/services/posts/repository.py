# src/services/posts/repository.py
"""
Репозиторий постов (источник истины).
"""

from __future__ import annotations

from asyncpg import Record

from src.consumers.idempotency import parse_command_count
from src.infra.database import DatabaseManager
from src.shared.models.common import PaginationParams
from src.shared.models.post import PostDTO

POST_COLUMNS = "post_id, user_id, title, content, media_ids, created_at"


def _to_dto(row: Record) -> PostDTO:
    data = dict(row)
    data["media_ids"] = list(data.get("media_ids") or [])
    return PostDTO.model_validate(data)


class PostRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def create(
        self,
        post_id: str,
        user_id: str,
        title: str,
        content: str,
        media_ids: list[str],
    ) -> PostDTO:
        """Сохраняет пост; commit происходит до возврата."""
        async with self.db.transaction() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO posts (post_id, user_id, title, content, media_ids)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {POST_COLUMNS}
                """,
                post_id,
                user_id,
                title,
                content,
                media_ids,
            )
        return _to_dto(row)

    async def get(self, post_id: str) -> PostDTO | None:
        row = await self.db.fetchrow(
            f"SELECT {POST_COLUMNS} FROM posts WHERE post_id = $1",
            post_id,
        )
        return _to_dto(row) if row else None

    async def list(self, pagination: PaginationParams) -> tuple[list[PostDTO], int]:
        """Страница постов, новые первыми, и общее количество."""
        rows = await self.db.fetch(
            f"""
            SELECT {POST_COLUMNS} FROM posts
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
            """,
            pagination.limit,
            pagination.offset,
        )
        total = await self.db.fetchval("SELECT COUNT(*) FROM posts")
        return [_to_dto(row) for row in rows], int(total or 0)

    async def delete(self, post_id: str) -> bool:
        async with self.db.transaction() as conn:
            status = await conn.execute("DELETE FROM posts WHERE post_id = $1", post_id)
        return parse_command_count(status) > 0
