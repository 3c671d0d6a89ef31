"""Тесты для WebSocket канала баланса WS /ws.

Приложение запускается через TestClient; события публикуются
в его цикле событий через portal.
"""

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from bongo.api import realtime_router
from bongo.identity.tokens import SessionTokens
from bongo.realtime.hub import (
    MAX_PENDING_EVENTS,
    BalanceEvent,
    BalanceEventType,
    ConnectionRegistry,
)

ACCOUNT_ID = 7


@pytest.fixture
def ws_tokens() -> SessionTokens:
    """Токены сессии для WebSocket."""
    return SessionTokens("test-secret")


@pytest.fixture
def ws_app(hub: ConnectionRegistry, ws_tokens: SessionTokens) -> FastAPI:
    """Приложение только с каналом баланса."""
    app = FastAPI()
    app.include_router(realtime_router)
    app.state.connections = hub
    app.state.session_tokens = ws_tokens
    return app


def _wait_for_connections(
    client: TestClient, hub: ConnectionRegistry, account_id: int, expected: int
) -> None:
    for _ in range(200):
        if client.portal.call(hub.connection_count, account_id) == expected:
            return
        time.sleep(0.01)
    raise AssertionError(f"ожидалось {expected} соединений аккаунта {account_id}")


def _flood(hub: ConnectionRegistry, account_id: int) -> None:
    # Без await: отправитель не успевает разобрать очередь
    for i in range(MAX_PENDING_EVENTS + 2):
        hub.publish(account_id, BalanceEvent(BalanceEventType.TOKENS_CONSUMED, i, i))


class TestBalanceChannel:
    """Синхронизация баланса между вкладками."""

    def test_both_tabs_receive_event(
        self, ws_app: FastAPI, hub: ConnectionRegistry, ws_tokens: SessionTokens
    ) -> None:
        """Тест: списание в одной вкладке видно во второй."""
        token = ws_tokens.issue(ACCOUNT_ID)

        with TestClient(ws_app) as client:
            with (
                client.websocket_connect(f"/ws?token={token}") as tab1,
                client.websocket_connect(f"/ws?token={token}") as tab2,
            ):
                _wait_for_connections(client, hub, ACCOUNT_ID, 2)

                client.portal.call(
                    hub.publish,
                    ACCOUNT_ID,
                    BalanceEvent(BalanceEventType.TOKENS_CONSUMED, 8, 3),
                )
                client.portal.call(
                    hub.publish,
                    ACCOUNT_ID,
                    BalanceEvent(BalanceEventType.TOKENS_ADDED, 18, 3),
                )

                expected = [
                    {"type": "tokensConsumed", "tokens": 8, "totalApiCalls": 3},
                    {"type": "tokensAdded", "tokens": 18, "totalApiCalls": 3},
                ]
                assert [tab1.receive_json(), tab1.receive_json()] == expected
                assert [tab2.receive_json(), tab2.receive_json()] == expected

            _wait_for_connections(client, hub, ACCOUNT_ID, 0)

    def test_invalid_token_closed_with_policy_violation(self, ws_app: FastAPI) -> None:
        """Тест: невалидный токен → соединение закрыто с кодом 1008."""
        with TestClient(ws_app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws?token=forged"):
                    pass

        assert exc_info.value.code == 1008

    def test_missing_token(self, ws_app: FastAPI) -> None:
        """Тест: без токена → 1008."""
        with TestClient(ws_app) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws"):
                    pass

        assert exc_info.value.code == 1008

    def test_lagging_client_is_disconnected(
        self, ws_app: FastAPI, hub: ConnectionRegistry, ws_tokens: SessionTokens
    ) -> None:
        """Тест: отброшенное реестром соединение закрывается с кодом 1011."""
        token = ws_tokens.issue(ACCOUNT_ID)

        with TestClient(ws_app) as client:
            with client.websocket_connect(f"/ws?token={token}") as ws:
                _wait_for_connections(client, hub, ACCOUNT_ID, 1)

                client.portal.call(_flood, hub, ACCOUNT_ID)

                with pytest.raises(WebSocketDisconnect) as exc_info:
                    while True:
                        ws.receive_json()

            _wait_for_connections(client, hub, ACCOUNT_ID, 0)

        assert exc_info.value.code == 1011
