"""Настройки приложения через переменные окружения.

ВАЖНО: Этот модуль загружает настройки из .env файла при импорте.
Для использования только классов настроек (без загрузки .env)
импортируйте из bongo.config.models вместо этого модуля.

Пример для тестов:
    # Изолированный импорт без побочных эффектов:
    from bongo.config.models import AWSSettings

    # НЕ используйте в тестах (загрузит .env):
    from bongo.config.settings import settings
"""

import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from bongo.config.constants import PROJECT_ROOT
from bongo.config.models import (
    AuthSettings,
    AWSSettings,
    DatabaseSettings,
    LoggingSettings,
    ProvidersSettings,
)

__all__ = ["Settings", "load_settings", "settings"]

ENV_FILE = PROJECT_ROOT / ".env"

# Если файл .env существует, используем его, иначе только переменные окружения
ENV_FILE_PATH = ENV_FILE if ENV_FILE.exists() else None

# Понятные описания ошибок для известных полей.
# Ключ: путь к полю в формате "родитель.поле".
FIELD_ERROR_MESSAGES: dict[str, str] = {
    "providers.bedrock.candidate_timeout": (
        "PROVIDERS__BEDROCK__CANDIDATE_TIMEOUT должен быть положительным числом секунд"
    ),
    "auth.session_ttl_days": "AUTH__SESSION_TTL_DAYS должен быть не меньше 1",
}

DEFAULT_ERROR_MESSAGE = "Ошибка конфигурации. Проверьте файл .env или переменные окружения"


class Settings(BaseSettings):
    """Главные настройки приложения.

    Настройки загружаются из двух источников (в порядке приоритета):
    1. Переменные окружения (приоритет выше)
    2. Файл .env (если существует)
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    aws: AWSSettings = AWSSettings()
    providers: ProvidersSettings = ProvidersSettings()
    auth: AuthSettings = AuthSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()


def _format_validation_error(error: ValidationError) -> str:
    """Преобразовать ошибку Pydantic в понятное сообщение.

    Args:
        error: Ошибка валидации от Pydantic.

    Returns:
        Многострочное описание всех найденных проблем.
    """
    messages: list[str] = []

    for err in error.errors():
        field_path = ".".join(str(loc) for loc in err["loc"])

        if field_path in FIELD_ERROR_MESSAGES:
            messages.append(FIELD_ERROR_MESSAGES[field_path])
        else:
            messages.append(DEFAULT_ERROR_MESSAGE)
            messages.append(f"Поле: {field_path}")
            messages.append(f"Тип ошибки: {err['type']}")
            messages.append(f"Сообщение: {err['msg']}")

    return "\n".join(messages)


def load_settings() -> Settings:
    """Загрузить настройки из переменных окружения.

    Если настройки некорректны — выводит понятную ошибку и завершает программу.

    Returns:
        Объект Settings с загруженными настройками.
    """
    try:
        return Settings()
    except ValidationError as e:
        print(_format_validation_error(e), file=sys.stderr)
        sys.exit(1)


settings = load_settings()
