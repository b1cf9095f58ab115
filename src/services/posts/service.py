# src/services/posts/service.py
"""
Бизнес-логика Post Service.

Запись в БД → commit → публикация события. Кэш Redis вспомогателен:
его недоступность не ломает запросы.
"""

from __future__ import annotations

from uuid import uuid4

from redis.exceptions import RedisError

from src.common.constants import TypeMsg
from src.common.exceptions import ForbiddenError, NotFoundError, RateLimitExceededError
from src.common.logger import log_info, log_warning
from src.infra.redis_client import RedisClient
from src.services.posts.publisher import PostEventPublisher
from src.services.posts.repository import PostRepository
from src.shared.models.common import PaginatedResponse, PaginationParams
from src.shared.models.post import (
    CreatePostRequest,
    CreatePostResponse,
    DeletePostResponse,
    PostDTO,
)

PostPage = PaginatedResponse[PostDTO]


class PostService:
    """Сервис постов."""

    def __init__(
        self,
        repository: PostRepository,
        redis: RedisClient,
        publisher: PostEventPublisher,
        post_ttl: int = 3600,
        list_ttl: int = 300,
        rate_limit_window: int = 60,
        rate_limit_max: int = 10,
    ) -> None:
        self._repository = repository
        self._redis = redis
        self._publisher = publisher
        self._post_ttl = post_ttl
        self._list_ttl = list_ttl
        self._rate_limit_window = rate_limit_window
        self._rate_limit_max = rate_limit_max

    @staticmethod
    def _post_key(post_id: str) -> str:
        return f"post:{post_id}"

    @staticmethod
    def _list_key(pagination: PaginationParams) -> str:
        return f"posts:{pagination.page}:{pagination.page_size}"

    # =========================================================================
    # RATE LIMIT И КЭШ
    # =========================================================================

    async def _check_rate_limit(self, user_id: str) -> None:
        """
        Raises:
            RateLimitExceededError: лимит создания постов исчерпан
        """
        try:
            count = await self._redis.increment(
                f"ratelimit:posts:{user_id}",
                self._rate_limit_window,
            )
        except RedisError as e:
            await log_warning(f"Rate limit недоступен, запрос пропущен без проверки: {e!r}")
            return

        if count > self._rate_limit_max:
            raise RateLimitExceededError(
                "Слишком много запросов на создание постов",
                details={"retry_after_seconds": self._rate_limit_window},
            )

    async def _invalidate(self, post_id: str | None = None) -> None:
        """Сбрасывает кэш списков и, если задан, кэш поста."""
        try:
            if post_id is not None:
                await self._redis.delete(self._post_key(post_id))
            await self._redis.delete_pattern("posts:*")
        except RedisError as e:
            await log_warning(f"Не удалось инвалидировать кэш постов: {e!r}")

    # =========================================================================
    # ОПЕРАЦИИ
    # =========================================================================

    async def create_post(self, user_id: str, request: CreatePostRequest) -> CreatePostResponse:
        await self._check_rate_limit(user_id)

        post = await self._repository.create(
            post_id=str(uuid4()),
            user_id=user_id,
            title=request.title,
            content=request.content,
            media_ids=request.media_ids,
        )
        await log_info(
            f"Пост {post.post_id} создан пользователем {user_id}",
            type_msg=TypeMsg.INFO,
        )

        await self._invalidate()

        warnings: list[str] = []
        warning = await self._publisher.publish_post_created(post)
        if warning:
            warnings.append(warning)

        return CreatePostResponse(post=post, warnings=warnings)

    async def get_post(self, post_id: str) -> PostDTO:
        """
        Raises:
            NotFoundError: пост не найден
        """
        key = self._post_key(post_id)
        try:
            cached = await self._redis.get_model(key, PostDTO)
        except RedisError as e:
            await log_warning(f"Кэш недоступен: {e!r}")
            cached = None
        if cached is not None:
            return cached

        post = await self._repository.get(post_id)
        if post is None:
            raise NotFoundError(f"Пост {post_id} не найден")

        try:
            await self._redis.set_model(key, post, ttl=self._post_ttl)
        except RedisError as e:
            await log_warning(f"Не удалось закэшировать пост {post_id}: {e!r}")
        return post

    async def list_posts(self, pagination: PaginationParams) -> PostPage:
        key = self._list_key(pagination)
        try:
            cached = await self._redis.get_model(key, PostPage)
        except RedisError as e:
            await log_warning(f"Кэш недоступен: {e!r}")
            cached = None
        if cached is not None:
            return cached

        items, total = await self._repository.list(pagination)
        page = PostPage.create(items=items, total=total, pagination=pagination)

        try:
            await self._redis.set_model(key, page, ttl=self._list_ttl)
        except RedisError as e:
            await log_warning(f"Не удалось закэшировать список постов: {e!r}")
        return page

    async def delete_post(self, user_id: str, post_id: str) -> DeletePostResponse:
        """
        Удаляет пост автора и публикует post.deleted с его медиа.

        Raises:
            NotFoundError: пост не найден
            ForbiddenError: пользователь не автор поста
        """
        post = await self._repository.get(post_id)
        if post is None:
            raise NotFoundError(f"Пост {post_id} не найден")
        if post.user_id != user_id:
            raise ForbiddenError("Удалить пост может только автор")

        deleted = await self._repository.delete(post_id)
        if not deleted:
            # Удалён параллельным запросом, событие публикует тот запрос
            raise NotFoundError(f"Пост {post_id} не найден")

        await log_info(f"Пост {post_id} удалён", type_msg=TypeMsg.INFO)
        await self._invalidate(post_id)

        warnings: list[str] = []
        warning = await self._publisher.publish_post_deleted(post_id, post.media_ids)
        if warning:
            warnings.append(warning)

        return DeletePostResponse(post_id=post_id, warnings=warnings)
