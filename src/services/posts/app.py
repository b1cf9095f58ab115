# src/services/posts/app.py
"""
FastAPI приложение для Post Service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, Query, status

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.config import settings
from src.services.http import check_health, get_user_id, setup_app
from src.services.posts.dependencies import (
    close_dependencies,
    get_infra,
    get_post_service,
    init_dependencies,
)
from src.services.posts.service import PostPage, PostService
from src.shared.models.common import ErrorResponse, HealthStatus, PaginationParams
from src.shared.models.post import (
    CreatePostRequest,
    CreatePostResponse,
    DeletePostResponse,
    PostDTO,
)


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    await log_info("Post Service запускается...", type_msg=TypeMsg.INFO)
    await init_dependencies()

    yield

    await close_dependencies()
    await log_info("Post Service остановлен", type_msg=TypeMsg.INFO)


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

app = FastAPI(
    title="Post Service",
    description="Сервис постов: источник истины и публикатор событий post.*",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_app(app)

UserId = Annotated[str, Depends(get_user_id)]
Service = Annotated[PostService, Depends(get_post_service)]


# =============================================================================
# HEALTH CHECK
# =============================================================================

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    db, redis, event_bus = get_infra()
    return await check_health("post_service", db, redis, event_bus)


# =============================================================================
# POSTS API
# =============================================================================

@app.post(
    "/api/v1/posts",
    response_model=CreatePostResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Posts"],
    responses={429: {"model": ErrorResponse, "description": "Превышен лимит запросов"}},
)
async def create_post(
    request: CreatePostRequest,
    user_id: UserId,
    service: Service,
) -> CreatePostResponse:
    """Создание поста."""
    return await service.create_post(user_id, request)


@app.get("/api/v1/posts", response_model=PostPage, tags=["Posts"])
async def list_posts(
    service: Service,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PostPage:
    """Список постов, новые первыми."""
    return await service.list_posts(PaginationParams(page=page, page_size=page_size))


@app.get(
    "/api/v1/posts/{post_id}",
    response_model=PostDTO,
    tags=["Posts"],
    responses={404: {"model": ErrorResponse, "description": "Пост не найден"}},
)
async def get_post(post_id: str, service: Service) -> PostDTO:
    """Получение поста по ID."""
    return await service.get_post(post_id)


@app.delete(
    "/api/v1/posts/{post_id}",
    response_model=DeletePostResponse,
    tags=["Posts"],
    responses={
        403: {"model": ErrorResponse, "description": "Пользователь не автор поста"},
        404: {"model": ErrorResponse, "description": "Пост не найден"},
    },
)
async def delete_post(post_id: str, user_id: UserId, service: Service) -> DeletePostResponse:
    """Удаление поста автором."""
    return await service.delete_post(user_id, post_id)
