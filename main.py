#!/usr/bin/env python3
# main.py
"""
Главная точка входа social backend.
Запускает микросервисы и консьюмеров в зависимости от режима.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg


# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []

MODES = ("post_service", "search_service", "media_service", "consumers", "all")


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def serve_app(name: str, app_path: str, port: int) -> None:
    """Запускает FastAPI приложение сервиса через uvicorn."""
    import uvicorn

    await log_info(f"Запуск {name} на порту {port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host="0.0.0.0",
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{name}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_post_service() -> None:
    """Post Service: посты и публикация событий."""
    await serve_app("Post Service", "src.services.posts.app:app", settings.deployment.POST_SERVICE_PORT)


async def run_search_service() -> None:
    """Search Service вместе со своим консьюмером."""
    await serve_app("Search Service", "src.services.search.app:app", settings.deployment.SEARCH_SERVICE_PORT)


async def run_media_service() -> None:
    """Media Service вместе со своим консьюмером."""
    await serve_app("Media Service", "src.services.media.app:app", settings.deployment.MEDIA_SERVICE_PORT)


async def run_consumers() -> None:
    """Консьюмеры search и media без HTTP."""
    from src.consumers.runner import run_consumers as start_consumers

    await start_consumers()


def print_usage() -> None:
    print(f"""
Использование:
    python main.py <режим>

Режимы:
    post_service      Post Service (:{settings.deployment.POST_SERVICE_PORT})
    search_service    Search Service + консьюмер search (:{settings.deployment.SEARCH_SERVICE_PORT})
    media_service     Media Service + консьюмер media (:{settings.deployment.MEDIA_SERVICE_PORT})
    consumers         Только консьюмеры (search и media)
    all               Все три сервиса одновременно

Режим по умолчанию берётся из COMPONENT_MODE.
    """)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска. Если None, берётся из COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    if mode is None:
        mode = settings.system.COMPONENT_MODE

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    runners = {
        "post_service": [run_post_service],
        "search_service": [run_search_service],
        "media_service": [run_media_service],
        "consumers": [run_consumers],
        "all": [run_post_service, run_search_service, run_media_service],
    }
    if mode not in runners:
        await log_error(f"Неизвестный режим: {mode}")
        return

    _running_tasks = [asyncio.create_task(run()) for run in runners[mode]]
    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Отмена всех компонентов...", type_msg=TypeMsg.INFO)
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        raise

    await log_info("Все компоненты остановлены", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
