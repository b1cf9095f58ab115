# src/services/search/service.py
"""
Поиск постов с read-through кэшем.
"""

from __future__ import annotations

from redis.exceptions import RedisError

from src.common.logger import log_warning
from src.infra.redis_client import RedisClient
from src.services.search.repository import SearchRepository
from src.shared.models.search import SearchResponse


class SearchService:
    def __init__(
        self,
        repository: SearchRepository,
        redis: RedisClient,
        results_ttl: int = 60,
        limit: int = 10,
    ) -> None:
        self._repository = repository
        self._redis = redis
        self._results_ttl = results_ttl
        self._limit = limit

    @staticmethod
    def _cache_key(query: str) -> str:
        return f"search:{query.strip().lower()}"

    async def search(self, query: str) -> SearchResponse:
        """
        Результаты кэшируются на короткий TTL; удаление поста становится
        видно в поиске не позже истечения TTL.
        """
        key = self._cache_key(query)
        try:
            cached = await self._redis.get_model(key, SearchResponse)
        except RedisError as e:
            await log_warning(f"Кэш поиска недоступен: {e!r}")
            cached = None
        if cached is not None:
            return cached

        items = await self._repository.search(query, limit=self._limit)
        response = SearchResponse(query=query, items=items)

        try:
            await self._redis.set_model(key, response, ttl=self._results_ttl)
        except RedisError as e:
            await log_warning(f"Не удалось закэшировать результаты поиска: {e!r}")
        return response
