"""Настройка логирования.

Два канала вывода:
1. Консоль (stdout) — цветная подсветка уровней, если это терминал
2. Файл с ротацией — история запросов (data/logs/app.log)

Компактный формат логов:
    26-01-07 21:55:46 | INFO | providers.ai.bedrock_provider | Сообщение
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler

from typing_extensions import override

from bongo.config.constants import DATA_DIR
from bongo.utils.timezone import get_timezone

# Папка для логов
LOGS_DIR = DATA_DIR / "logs"

# Формат строки и даты (короткий год: 26-01-07)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%y-%m-%d %H:%M:%S"


# ==============================================================================
# ANSI-коды для цветного вывода в терминале
# ==============================================================================
#
# Формат: \033[<код>m. 31-37: цвета текста, 90: серый, 0: сброс.


class AnsiColors:
    """ANSI escape-коды для цветного вывода в терминале."""

    RESET = "\033[0m"

    DEBUG = "\033[36m"  # cyan
    INFO = "\033[32m"  # green
    WARNING = "\033[33m"  # yellow
    ERROR = "\033[31m"  # red
    CRITICAL = "\033[35m"  # magenta


LEVEL_COLORS: dict[str, str] = {
    "DEBUG": AnsiColors.DEBUG,
    "INFO": AnsiColors.INFO,
    "WARNING": AnsiColors.WARNING,
    "ERROR": AnsiColors.ERROR,
    "CRITICAL": AnsiColors.CRITICAL,
}


class TimezoneFormatter(logging.Formatter):
    """Форматтер логов с поддержкой часового пояса.

    Стандартный logging.Formatter использует локальное время системы,
    а на сервере это обычно UTC. Здесь пояс задаётся явно.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "UTC",
    ) -> None:
        """Инициализировать форматтер.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
        """
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)

    @override
    def formatTime(
        self,
        record: logging.LogRecord,
        datefmt: str | None = None,
    ) -> str:
        dt = datetime.fromtimestamp(record.created, tz=self.timezone)
        return dt.strftime(datefmt or self.default_time_format)


class ColoredFormatter(TimezoneFormatter):
    """Форматтер с цветной подсветкой уровня и коротким именем модуля.

    Префикс "bongo." у имени логгера убирается: он везде одинаковый.
    В файловом логе цвета не нужны — там используется TimezoneFormatter.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "UTC",
        use_colors: bool = True,
    ) -> None:
        """Инициализировать форматтер с цветами.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
            use_colors: Использовать ли цветную подсветку.
        """
        super().__init__(fmt, datefmt, timezone_name)
        self.use_colors = use_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        # Имя восстанавливаем: запись разделяют все handler-ы
        original_name = record.name
        record.name = record.name.removeprefix("bongo.")
        formatted = super().format(record)
        record.name = original_name

        if not self.use_colors:
            return formatted

        level_color = LEVEL_COLORS.get(record.levelname)
        if level_color:
            formatted = formatted.replace(
                f"| {record.levelname} |",
                f"| {level_color}{record.levelname}{AnsiColors.RESET} |",
                1,
            )
        return formatted


def _should_use_colors() -> bool:
    """Определить, поддерживает ли терминал цвета.

    Учитывает переменную NO_COLOR (https://no-color.org/)
    и то, является ли stdout терминалом.
    """
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def setup_logging(level: str = "INFO", timezone_name: str = "UTC") -> None:
    """Настроить логирование приложения.

    Логи выводятся в консоль и сохраняются в файл с ротацией
    (data/logs/app.log, максимум 5 МБ, 3 резервных копии).
    Логгеры uvicorn переводятся на тот же формат.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для отображения времени в логах.
    """
    LOGS_DIR.mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        ColoredFormatter(
            LOG_FORMAT,
            datefmt=DATE_FORMAT,
            timezone_name=timezone_name,
            use_colors=_should_use_colors(),
        )
    )

    file_handler = RotatingFileHandler(
        LOGS_DIR / "app.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        TimezoneFormatter(LOG_FORMAT, datefmt=DATE_FORMAT, timezone_name=timezone_name)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # ===========================================================================
    # Единый формат для uvicorn
    # ===========================================================================
    for name in ("uvicorn.error", "uvicorn.access"):
        uvicorn_child = logging.getLogger(name)
        uvicorn_child.handlers = [console_handler, file_handler]
        uvicorn_child.propagate = False

    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.handlers = []
    uvicorn_logger.propagate = False

    # httpx пишет строку на каждый запрос к Bedrock, попытки и так логируются
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с указанным именем.

    Args:
        name: Имя логгера (обычно __name__).

    Returns:
        Настроенный экземпляр логгера.
    """
    return logging.getLogger(name)
