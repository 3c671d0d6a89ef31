"""Factory для создания FastAPI приложения.

Функция create_app() создаёт и настраивает FastAPI app:
- Подключает все роутеры (chat, user, auth, models, realtime, health)
- Регистрирует обработчики исключений приложения
- Подключает lifecycle manager
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from bongo.api import (
    auth_router,
    chat_router,
    health_router,
    models_router,
    realtime_router,
    user_router,
)
from bongo.api.errors import install_exception_handlers
from bongo.app.lifecycle import ApplicationLifecycle
from bongo.utils.logging import get_logger

if TYPE_CHECKING:
    from bongo.config.settings import Settings
    from bongo.config.yaml_config import YamlConfig

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    yaml_config: YamlConfig | None = None,
) -> FastAPI:
    """Создать и настроить FastAPI приложение.

    Без аргументов берёт настройки из окружения и config.yaml.

    Args:
        settings: Настройки приложения (опционально, для тестов).
        yaml_config: YAML-конфигурация (опционально, для тестов).

    Returns:
        Настроенное FastAPI приложение готовое к запуску
    """
    if settings is None:
        from bongo.config.settings import settings as global_settings

        settings = global_settings
    if yaml_config is None:
        from bongo.config.yaml_config import yaml_config as global_yaml_config

        yaml_config = global_yaml_config

    lifecycle = ApplicationLifecycle(settings, yaml_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Управление жизненным циклом приложения.

        Args:
            app: FastAPI приложение

        Yields:
            None: Приложение работает между startup и shutdown
        """
        await lifecycle.startup(app)

        yield

        await lifecycle.shutdown()

    app = FastAPI(
        title="Bongo",
        description="Шлюз генерации текста, изображений и видео через Amazon Bedrock",
        version="0.1.0",
        lifespan=lifespan,
    )

    install_exception_handlers(app)

    # Генерация: POST /api/chat
    app.include_router(chat_router)

    # Токены и профиль: /api/user/check-tokens, /api/user/consume-tokens, /api/user/profile
    app.include_router(user_router)

    # Вход: /api/auth/google-login, /api/auth/verify-token, /api/auth/logout
    app.include_router(auth_router)

    # Каталог: GET /api/models
    app.include_router(models_router)

    # Синхронизация баланса: WS /ws
    app.include_router(realtime_router)

    # Health check API: /health
    app.include_router(health_router)

    return app
