#!/usr/bin/env python3
# entrypoint_consumers.py
"""
Точка входа для консьюмеров search и media без HTTP.
Имена консьюмеров можно передать аргументами: entrypoint_consumers.py search
"""

import asyncio
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from src.common.logger import setup_logging
from src.consumers.runner import run_consumers


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(run_consumers(sys.argv[1:] or None))
    except KeyboardInterrupt:
        pass
