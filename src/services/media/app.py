# src/services/media/app.py
"""
FastAPI приложение для Media Service.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, status

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.config import settings
from src.services.http import check_health, get_user_id, setup_app
from src.services.media.dependencies import (
    close_dependencies,
    get_infra,
    get_media_service,
    init_dependencies,
)
from src.services.media.service import MediaService
from src.shared.models.common import HealthStatus
from src.shared.models.media import MediaDTO, RegisterMediaRequest


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    await log_info("Media Service запускается...", type_msg=TypeMsg.INFO)
    await init_dependencies()

    yield

    await close_dependencies()
    await log_info("Media Service остановлен", type_msg=TypeMsg.INFO)


app = FastAPI(
    title="Media Service",
    description="Метаданные медиа; очистка медиа удалённых постов по событиям",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_app(app)

UserId = Annotated[str, Depends(get_user_id)]
Service = Annotated[MediaService, Depends(get_media_service)]


@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    db, redis, event_bus = get_infra()
    return await check_health("media_service", db, redis, event_bus)


@app.post(
    "/api/v1/media",
    response_model=MediaDTO,
    status_code=status.HTTP_201_CREATED,
    tags=["Media"],
)
async def register_media(
    request: RegisterMediaRequest,
    user_id: UserId,
    service: Service,
) -> MediaDTO:
    """Регистрация загруженного медиа."""
    return await service.register_media(user_id, request)


@app.get("/api/v1/media", response_model=list[MediaDTO], tags=["Media"])
async def list_media(user_id: UserId, service: Service) -> list[MediaDTO]:
    """Медиа текущего пользователя."""
    return await service.list_media(user_id)
