"""Тесты для эндпоинтов токенов и профиля (/api/user/*)."""

from collections.abc import Awaitable, Callable

import httpx
import pytest
from fastapi import FastAPI

from bongo.config.models import AWSSettings, BedrockSettings
from bongo.config.yaml_config import YamlConfig
from bongo.db.models.account import Account
from bongo.identity.tokens import SessionTokens
from bongo.services.ai_service import create_ai_service

# =============================================================================
# ПРОВЕРКА БАЛАНСА
# =============================================================================


class TestCheckTokens:
    """POST /api/user/check-tokens."""

    @pytest.mark.asyncio
    async def test_enough(self, client: httpx.AsyncClient, auth_headers: dict[str, str]) -> None:
        """Тест: баланс 10, изображение стоит 2 → хватает."""
        response = await client.post(
            "/api/user/check-tokens",
            json={"category": "image", "model": "nova-canvas"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"hasEnoughTokens": True, "required": 2, "available": 10}

    @pytest.mark.asyncio
    async def test_not_enough_is_not_an_error(
        self,
        client: httpx.AsyncClient,
        make_account: Callable[..., Awaitable[Account]],
        session_tokens: SessionTokens,
    ) -> None:
        """Тест: нехватка токенов при проверке → 200 с hasEnoughTokens = false."""
        account = await make_account(tokens=1)
        headers = {"Authorization": f"Bearer {session_tokens.issue(account.id)}"}

        response = await client.post(
            "/api/user/check-tokens", json={"category": "video"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json() == {"hasEnoughTokens": False, "required": 3, "available": 1}

    @pytest.mark.asyncio
    async def test_unknown_category(
        self, client: httpx.AsyncClient, auth_headers: dict[str, str]
    ) -> None:
        """Тест: неизвестная категория → 422."""
        response = await client.post(
            "/api/user/check-tokens", json={"category": "audio"}, headers=auth_headers
        )

        assert response.status_code == 422


# =============================================================================
# СПИСАНИЕ
# =============================================================================


class TestConsumeTokens:
    """POST /api/user/consume-tokens."""

    @pytest.mark.asyncio
    async def test_consume(self, client: httpx.AsyncClient, auth_headers: dict[str, str]) -> None:
        """Тест: списание 2 токенов за изображение."""
        response = await client.post(
            "/api/user/consume-tokens",
            json={"category": "image", "model": "nova-canvas"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["remainingTokens"] == 8
        assert data["totalApiCalls"] == 1
        assert isinstance(data["chargeId"], int)

    @pytest.mark.asyncio
    async def test_insufficient(
        self,
        client: httpx.AsyncClient,
        make_account: Callable[..., Awaitable[Account]],
        session_tokens: SessionTokens,
    ) -> None:
        """Тест: нехватка токенов → 402 {success: false, message}."""
        account = await make_account(tokens=2)
        headers = {"Authorization": f"Bearer {session_tokens.issue(account.id)}"}

        response = await client.post(
            "/api/user/consume-tokens",
            json={"category": "video", "model": "nova-reel"},
            headers=headers,
        )

        assert response.status_code == 402
        data = response.json()
        assert data["success"] is False
        assert "Insufficient tokens" in data["message"]

        profile = await client.get("/api/user/profile", headers=headers)
        assert profile.json()["user"]["tokens"] == 2

    @pytest.mark.asyncio
    async def test_request_id_replay(
        self, client: httpx.AsyncClient, auth_headers: dict[str, str]
    ) -> None:
        """Тест: повтор с тем же requestId не списывает второй раз."""
        body = {"category": "text", "model": "claude-opus-4", "requestId": "tab-1-42"}

        first = await client.post("/api/user/consume-tokens", json=body, headers=auth_headers)
        second = await client.post("/api/user/consume-tokens", json=body, headers=auth_headers)

        assert first.json()["chargeId"] == second.json()["chargeId"]
        assert second.json()["remainingTokens"] == 9

    @pytest.mark.asyncio
    async def test_request_id_reused_for_other_model(
        self, client: httpx.AsyncClient, auth_headers: dict[str, str]
    ) -> None:
        """Тест: requestId от другой генерации → 409 {success: false, message}."""
        first = await client.post(
            "/api/user/consume-tokens",
            json={"category": "text", "model": "claude-opus-4", "requestId": "tab-1-43"},
            headers=auth_headers,
        )
        second = await client.post(
            "/api/user/consume-tokens",
            json={"category": "video", "model": "nova-reel", "requestId": "tab-1-43"},
            headers=auth_headers,
        )

        assert first.status_code == 200
        assert second.status_code == 409
        data = second.json()
        assert data["success"] is False
        assert "tab-1-43" in data["message"]

        profile = await client.get("/api/user/profile", headers=auth_headers)
        assert profile.json()["user"]["tokens"] == 9

    @pytest.mark.asyncio
    async def test_provider_not_configured(
        self,
        api_app: FastAPI,
        client: httpx.AsyncClient,
        auth_headers: dict[str, str],
        yaml_config: YamlConfig,
    ) -> None:
        """Тест: Bedrock не настроен → 500, токены не списываются."""
        api_app.state.ai_service = create_ai_service(
            aws=AWSSettings(), bedrock=BedrockSettings(), config=yaml_config
        )

        response = await client.post(
            "/api/user/consume-tokens",
            json={"category": "text", "model": "claude-opus-4"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        profile = await client.get("/api/user/profile", headers=auth_headers)
        assert profile.json()["user"]["tokens"] == 10


# =============================================================================
# ПРОФИЛЬ
# =============================================================================


class TestProfile:
    """GET /api/user/profile."""

    @pytest.mark.asyncio
    async def test_profile(
        self,
        client: httpx.AsyncClient,
        auth_headers: dict[str, str],
        test_account: Account,
    ) -> None:
        """Тест: профиль в формате клиента."""
        response = await client.get("/api/user/profile", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        user = data["user"]
        assert user["id"] == str(test_account.id)
        assert user["googleId"] == test_account.external_id
        assert user["email"] == test_account.email
        assert user["tokens"] == 10
        assert user["totalApiCalls"] == 0
        assert user["hasReceivedSignupBonus"] is False

    @pytest.mark.asyncio
    async def test_profile_requires_auth(self, client: httpx.AsyncClient) -> None:
        """Тест: без токена → 401."""
        response = await client.get("/api/user/profile")

        assert response.status_code == 401
