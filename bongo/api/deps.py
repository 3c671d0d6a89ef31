"""Зависимости FastAPI для роутеров.

Долгоживущие объекты (AI-сервис, реестр соединений, токены сессии)
создаются при старте приложения и лежат в app.state.
Сервисы с сессией БД создаются на каждый запрос.
"""

from typing import Annotated, cast

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bongo.config.yaml_config import YamlConfig
from bongo.core.exceptions import IdentityVerificationError
from bongo.db.base import get_session
from bongo.db.models.account import Account
from bongo.identity.google import IdentityVerifier
from bongo.identity.service import LoginService
from bongo.identity.tokens import SessionTokens
from bongo.realtime.hub import ConnectionRegistry
from bongo.services.ai_service import AIService
from bongo.services.generation_service import GenerationService
from bongo.services.token_meter import TokenMeter, create_token_meter


def get_ai_service(request: Request) -> AIService:
    """AI-сервис из app.state."""
    return cast("AIService", request.app.state.ai_service)


def get_connection_registry(request: Request) -> ConnectionRegistry:
    """Реестр WebSocket-соединений из app.state."""
    return cast("ConnectionRegistry", request.app.state.connections)


def get_yaml_config(request: Request) -> YamlConfig:
    """YAML-конфигурация из app.state."""
    return cast("YamlConfig", request.app.state.yaml_config)


def get_session_tokens(request: Request) -> SessionTokens:
    """Сервис токенов сессии из app.state."""
    return cast("SessionTokens", request.app.state.session_tokens)


def get_identity_verifier(request: Request) -> IdentityVerifier | None:
    """Проверка Google ID-токена (None если вход через Google не настроен)."""
    return cast("IdentityVerifier | None", request.app.state.identity_verifier)


def get_token_meter(
    session: Annotated[AsyncSession, Depends(get_session)],
    config: Annotated[YamlConfig, Depends(get_yaml_config)],
    hub: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
) -> TokenMeter:
    """TokenMeter на сессии текущего запроса."""
    return create_token_meter(session, config, hub=hub)


def get_login_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    tokens: Annotated[SessionTokens, Depends(get_session_tokens)],
    meter: Annotated[TokenMeter, Depends(get_token_meter)],
    verifier: Annotated[IdentityVerifier | None, Depends(get_identity_verifier)],
) -> LoginService:
    """Сервис входа на сессии текущего запроса."""
    return LoginService(session, tokens, meter, verifier)


def get_generation_service(
    ai_service: Annotated[AIService, Depends(get_ai_service)],
    meter: Annotated[TokenMeter, Depends(get_token_meter)],
) -> GenerationService:
    """Сервис генераций на сессии текущего запроса."""
    return GenerationService(ai_service, meter)


def parse_bearer(authorization: str | None) -> str:
    """Достать токен из заголовка Authorization: Bearer <token>.

    Raises:
        IdentityVerificationError: Заголовка нет или формат неверный.
    """
    if not authorization:
        raise IdentityVerificationError("Authorization required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise IdentityVerificationError("Authorization required")
    return token.strip()


async def get_current_account(
    login_service: Annotated[LoginService, Depends(get_login_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> Account:
    """Аккаунт владельца токена сессии.

    Raises:
        IdentityVerificationError: Нет токена, токен невалиден или истёк.
    """
    return await login_service.resolve(parse_bearer(authorization))
