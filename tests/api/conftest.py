"""Фикстуры для тестов HTTP API.

Приложение собирается без lifespan: роутеры, обработчики ошибок и
app.state заполняются вручную, сессия БД подменяется тестовой.
Bedrock и Google заменены заглушками.
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bongo.api import (
    auth_router,
    chat_router,
    health_router,
    models_router,
    realtime_router,
    user_router,
)
from bongo.api.errors import install_exception_handlers
from bongo.config.models import AWSSettings, BedrockSettings
from bongo.config.yaml_config import YamlConfig
from bongo.core.exceptions import IdentityVerificationError
from bongo.db.base import get_session
from bongo.db.models.account import Account
from bongo.identity.google import VerifiedIdentity
from bongo.identity.tokens import SessionTokens
from bongo.realtime.hub import ConnectionRegistry
from bongo.services.ai_service import create_ai_service


class FakeBedrock:
    """Заглушка Bedrock: по умолчанию отвечает текстом Claude."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: dict[str, Any] = {
            "content": [{"type": "text", "text": "Hi there"}],
            "usage": {"input_tokens": 3, "output_tokens": 2},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="Service Unavailable")
        return httpx.Response(200, json=self.body)


class FakeVerifier:
    """Заглушка проверки Google ID-токена."""

    def __init__(self) -> None:
        self.identities: dict[str, VerifiedIdentity] = {}

    async def verify(self, credential: str) -> VerifiedIdentity:
        identity = self.identities.get(credential)
        if identity is None:
            raise IdentityVerificationError("Invalid Google credential")
        return identity

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_bedrock() -> FakeBedrock:
    """Заглушка Bedrock."""
    return FakeBedrock()


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    """Заглушка Google."""
    return FakeVerifier()


@pytest.fixture
def session_tokens() -> SessionTokens:
    """Токены сессии с фиксированным секретом."""
    return SessionTokens("test-secret")


@pytest.fixture
def api_app(
    session_factory: async_sessionmaker[AsyncSession],
    yaml_config: YamlConfig,
    hub: ConnectionRegistry,
    fake_bedrock: FakeBedrock,
    fake_verifier: FakeVerifier,
    session_tokens: SessionTokens,
) -> FastAPI:
    """Приложение со всеми роутерами и тестовым окружением."""
    app = FastAPI()
    install_exception_handlers(app)
    for router in (
        chat_router,
        user_router,
        auth_router,
        models_router,
        realtime_router,
        health_router,
    ):
        app.include_router(router)

    app.state.yaml_config = yaml_config
    app.state.ai_service = create_ai_service(
        aws=AWSSettings(bearer_token="test-key", region="us-east-1"),
        bedrock=BedrockSettings(candidate_timeout=5.0),
        config=yaml_config,
        transport=httpx.MockTransport(fake_bedrock.handler),
    )
    app.state.connections = hub
    app.state.session_tokens = session_tokens
    app.state.identity_verifier = fake_verifier

    async def _test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _test_session
    return app


@pytest_asyncio.fixture
async def client(api_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP-клиент к тестовому приложению."""
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers(test_account: Account, session_tokens: SessionTokens) -> dict[str, str]:
    """Заголовок Authorization для тестового аккаунта."""
    return {"Authorization": f"Bearer {session_tokens.issue(test_account.id)}"}
