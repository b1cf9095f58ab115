# src/services/http.py
"""
Общие части HTTP-слоя сервисов: обработчики ошибок, заголовок пользователя,
health check зависимостей.
"""

from __future__ import annotations

from typing import Annotated, Awaitable, Callable

from fastapi import FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.constants import USER_ID_HEADER, HealthState, TypeMsg
from src.common.exceptions import AppError
from src.common.logger import log_error, log_info
from src.config import settings
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient
from src.shared.models.common import ErrorResponse, HealthStatus


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Преобразует AppError в ErrorResponse с кодом исключения."""
    if exc.status_code >= 500:
        await log_error(
            f"{request.method} {request.url.path}: {exc.error_code}: {exc.message}",
        )
    body = ErrorResponse(error_code=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    await log_info(
        f"Получен запрос {request.method} {request.url.path}",
        type_msg=TypeMsg.DEBUG,
    )
    return await call_next(request)


def setup_app(app: FastAPI) -> None:
    """CORS, логирование запросов и обработчики ошибок."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(AppError, app_error_handler)


async def get_user_id(
    x_user_id: Annotated[str, Header(alias=USER_ID_HEADER, min_length=1)],
) -> str:
    """
    Идентификатор пользователя из заголовка X-User-Id.
    Заголовок выставляет gateway после проверки токена.
    """
    return x_user_id


async def check_health(
    service: str,
    db: DatabaseManager | None,
    redis: RedisClient | None,
    event_bus: EventBus | None,
) -> HealthStatus:
    """Собирает статус зависимостей сервиса."""
    checks = {
        "postgres": db.health_check() if db is not None else None,
        "redis": redis.health_check() if redis is not None else None,
        "rabbitmq": event_bus.health_check() if event_bus is not None else None,
    }

    deps: dict[str, str] = {}
    for name, check in checks.items():
        healthy = await check if check is not None else False
        deps[name] = (HealthState.HEALTHY if healthy else HealthState.UNHEALTHY).value

    if all(v == HealthState.HEALTHY.value for v in deps.values()):
        overall = HealthState.HEALTHY
    elif deps["postgres"] == HealthState.HEALTHY.value:
        overall = HealthState.DEGRADED
    else:
        overall = HealthState.UNHEALTHY

    return HealthStatus(
        service=service,
        status=overall.value,
        version=settings.system.VERSION,
        dependencies=deps,
    )
