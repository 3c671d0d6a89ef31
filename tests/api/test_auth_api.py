"""Тесты для эндпоинтов входа (/api/auth/*)."""

from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from bongo.db.models.account import Account
from bongo.identity.google import VerifiedIdentity
from bongo.identity.tokens import SessionTokens


@pytest.fixture
def alice(fake_verifier: Any) -> str:
    """Credential, который заглушка Google принимает."""
    fake_verifier.identities["alice-credential"] = VerifiedIdentity(
        subject="google-sub-alice",
        email="alice@example.com",
        name="Alice Smith",
        given_name="Alice",
        family_name="Smith",
        picture="https://example.com/alice.png",
    )
    return "alice-credential"


class TestGoogleLogin:
    """POST /api/auth/google-login."""

    @pytest.mark.asyncio
    async def test_first_login_creates_account_with_bonus(
        self, client: httpx.AsyncClient, alice: str, session_tokens: SessionTokens
    ) -> None:
        """Тест: первый вход создаёт аккаунт и начисляет 10 токенов."""
        response = await client.post("/api/auth/google-login", json={"credential": alice})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        user = data["user"]
        assert user["googleId"] == "google-sub-alice"
        assert user["email"] == "alice@example.com"
        assert user["given_name"] == "Alice"
        assert user["tokens"] == 10
        assert user["hasReceivedSignupBonus"] is True
        assert session_tokens.verify(data["token"]) == int(user["id"])

    @pytest.mark.asyncio
    async def test_second_login_no_bonus(self, client: httpx.AsyncClient, alice: str) -> None:
        """Тест: повторный вход не начисляет бонус второй раз."""
        first = await client.post("/api/auth/google-login", json={"credential": alice})
        headers = {"Authorization": f"Bearer {first.json()['token']}"}
        await client.post(
            "/api/user/consume-tokens",
            json={"category": "image", "model": "nova-canvas"},
            headers=headers,
        )

        second = await client.post("/api/auth/google-login", json={"credential": alice})

        assert second.status_code == 200
        assert second.json()["user"]["id"] == first.json()["user"]["id"]
        assert second.json()["user"]["tokens"] == 8

    @pytest.mark.asyncio
    async def test_rejected_credential(self, client: httpx.AsyncClient) -> None:
        """Тест: Google не подтвердил личность → 401."""
        response = await client.post("/api/auth/google-login", json={"credential": "bogus"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid Google credential"}

    @pytest.mark.asyncio
    async def test_login_not_configured(
        self, api_app: FastAPI, client: httpx.AsyncClient, alice: str
    ) -> None:
        """Тест: без GOOGLE client id вход отклоняется."""
        api_app.state.identity_verifier = None

        response = await client.post("/api/auth/google-login", json={"credential": alice})

        assert response.status_code == 401
        assert response.json()["error"] == "Google login is not configured"

    @pytest.mark.asyncio
    async def test_empty_credential(self, client: httpx.AsyncClient) -> None:
        """Тест: пустой credential → 422."""
        response = await client.post("/api/auth/google-login", json={"credential": ""})

        assert response.status_code == 422


class TestVerifyToken:
    """POST /api/auth/verify-token."""

    @pytest.mark.asyncio
    async def test_valid_token(
        self,
        client: httpx.AsyncClient,
        test_account: Account,
        session_tokens: SessionTokens,
    ) -> None:
        """Тест: валидный токен → профиль."""
        response = await client.post(
            "/api/auth/verify-token", json={"token": session_tokens.issue(test_account.id)}
        )

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(test_account.id)

    @pytest.mark.asyncio
    async def test_token_for_deleted_account(
        self, client: httpx.AsyncClient, session_tokens: SessionTokens
    ) -> None:
        """Тест: токен аккаунта, которого нет → 401."""
        response = await client.post(
            "/api/auth/verify-token", json={"token": session_tokens.issue(999)}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Account not found"

    @pytest.mark.asyncio
    async def test_token_signed_with_other_secret(
        self, client: httpx.AsyncClient, test_account: Account
    ) -> None:
        """Тест: токен, подписанный чужим секретом → 401."""
        token = SessionTokens("other-secret").issue(test_account.id)

        response = await client.post("/api/auth/verify-token", json={"token": token})

        assert response.status_code == 401


class TestLogout:
    """POST /api/auth/logout."""

    @pytest.mark.asyncio
    async def test_logout(self, client: httpx.AsyncClient) -> None:
        """Тест: выход всегда успешен."""
        response = await client.post("/api/auth/logout", json={"userId": "1"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
