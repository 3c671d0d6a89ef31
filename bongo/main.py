"""Точка входа в приложение.

Команда запуска:
    uvicorn bongo.main:app --host 0.0.0.0 --port 8000

Или через python:
    python -m bongo
"""

import logging

from bongo.app import create_app
from bongo.config.settings import settings
from bongo.utils.logging import setup_logging

# Настраиваем логирование при импорте модуля
setup_logging(
    level=settings.logging.level,
    timezone_name=settings.logging.timezone,
)

_logger = logging.getLogger(__name__)
_logger.info("Bongo: логирование настроено, загрузка приложения")

# Создаём FastAPI приложение
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
