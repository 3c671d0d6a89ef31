"""Утилиты для работы с часовыми поясами.

Время в базе данных хранится в UTC. Часовой пояс логов задаётся через
LOGGING__TIMEZONE в настройках.
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Получить объект часового пояса по имени.

    Args:
        timezone_name: Название часового пояса из базы IANA.
            Примеры: "Europe/Moscow", "UTC", "America/New_York".

    Returns:
        Объект ZoneInfo для указанного часового пояса.

    Raises:
        ZoneInfoNotFoundError: Если указанный часовой пояс не найден.
    """
    return ZoneInfo(timezone_name)


def utc_now() -> datetime:
    """Текущее время в UTC (aware datetime)."""
    return datetime.now(UTC)
