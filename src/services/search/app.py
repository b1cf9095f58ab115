# src/services/search/app.py
"""
FastAPI приложение для Search Service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, Query

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.config import settings
from src.services.http import check_health, setup_app
from src.services.search.dependencies import (
    close_dependencies,
    get_infra,
    get_search_service,
    init_dependencies,
)
from src.services.search.service import SearchService
from src.shared.models.common import HealthStatus
from src.shared.models.search import SearchResponse


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    await log_info("Search Service запускается...", type_msg=TypeMsg.INFO)
    await init_dependencies()

    yield

    await close_dependencies()
    await log_info("Search Service остановлен", type_msg=TypeMsg.INFO)


app = FastAPI(
    title="Search Service",
    description="Полнотекстовый поиск по постам (проекция событий post.*)",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_app(app)


@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    db, redis, event_bus = get_infra()
    return await check_health("search_service", db, redis, event_bus)


@app.get("/api/v1/search", response_model=SearchResponse, tags=["Search"])
async def search_posts(
    service: Annotated[SearchService, Depends(get_search_service)],
    query: str = Query(..., min_length=1, max_length=200),
) -> SearchResponse:
    """Поиск постов по заголовку и тексту."""
    return await service.search(query)
