"""Управление жизненным циклом приложения.

Класс ApplicationLifecycle инкапсулирует всю логику startup и shutdown:
- Создание таблиц БД
- AI-сервис (каталог моделей, исполнитель Bedrock)
- Реестр WebSocket-соединений
- Токены сессии и проверка Google ID-токена
- Корректная остановка всех компонентов
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bongo.db.base import create_tables, dispose_engine
from bongo.identity.google import GoogleIdentityVerifier
from bongo.identity.tokens import create_session_tokens
from bongo.realtime.hub import ConnectionRegistry
from bongo.services.ai_service import create_ai_service
from bongo.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

    from bongo.config.settings import Settings
    from bongo.config.yaml_config import YamlConfig
    from bongo.identity.google import IdentityVerifier
    from bongo.services.ai_service import AIService

logger = get_logger(__name__)


class ApplicationLifecycle:
    """Управление жизненным циклом приложения.

    Attributes:
        settings: Настройки приложения из .env
        yaml_config: Конфигурация из config.yaml
        ai_service: AI-сервис (создаётся при startup)
        connections: Реестр WebSocket-соединений
        identity_verifier: Проверка Google ID-токена (None если не настроена)
    """

    def __init__(self, settings: Settings, yaml_config: YamlConfig) -> None:
        """Инициализировать lifecycle manager.

        Args:
            settings: Настройки приложения из .env
            yaml_config: Конфигурация из config.yaml
        """
        self.settings = settings
        self.yaml_config = yaml_config

        self.ai_service: AIService | None = None
        self.connections: ConnectionRegistry | None = None
        self.identity_verifier: IdentityVerifier | None = None

    async def startup(self, app: FastAPI) -> None:
        """Выполнить startup приложения.

        Создаёт компоненты и кладёт их в app.state для роутеров.

        Args:
            app: FastAPI приложение
        """
        logger.info("Запуск приложения...")

        await create_tables()
        logger.debug("Таблицы БД готовы")

        self.ai_service = create_ai_service(
            aws=self.settings.aws,
            bedrock=self.settings.providers.bedrock,
            config=self.yaml_config,
        )
        self.connections = ConnectionRegistry()

        if self.settings.auth.google_client_id:
            self.identity_verifier = GoogleIdentityVerifier(
                self.settings.auth.google_client_id
            )
        else:
            logger.warning("AUTH__GOOGLE_CLIENT_ID не задан: вход через Google отключён")

        app.state.yaml_config = self.yaml_config
        app.state.ai_service = self.ai_service
        app.state.connections = self.connections
        app.state.session_tokens = create_session_tokens(self.settings.auth)
        app.state.identity_verifier = self.identity_verifier

        logger.info("✅ Приложение запущено успешно")

    async def shutdown(self) -> None:
        """Выполнить shutdown приложения.

        Останавливает компоненты в обратном порядке:
        1. WebSocket-отправители
        2. HTTP-клиенты (Bedrock, Google)
        3. Пул соединений БД
        """
        logger.info("Остановка приложения...")

        if self.connections is not None:
            await self.connections.close_all()
            logger.debug("WebSocket-соединения закрыты")

        if self.ai_service is not None:
            await self.ai_service.close()
            logger.debug("HTTP-клиент Bedrock закрыт")

        if self.identity_verifier is not None:
            await self.identity_verifier.close()

        await dispose_engine()
        logger.debug("Пул соединений БД закрыт")

        logger.info("✅ Приложение остановлено")
