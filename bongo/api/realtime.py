"""WebSocket канал синхронизации баланса.

- WS /ws?token=<токен сессии>

После подключения клиент получает события изменения баланса:
    {"type": "tokensConsumed" | "tokensAdded", "tokens": 8, "totalApiCalls": 3}

Каждая вкладка/устройство — отдельное соединение; событие получают
все соединения аккаунта. Входящие сообщения клиента игнорируются.

Коды закрытия:
- 1008 — невалидный токен
- 1011 — клиент не успевал получать события и был отключён от реестра;
  клиенту нужно переподключиться и перечитать профиль
"""

import asyncio
from typing import cast

from fastapi import APIRouter, WebSocket, status

from bongo.core.exceptions import IdentityVerificationError
from bongo.identity.tokens import SessionTokens
from bongo.realtime.hub import ConnectionRegistry, SessionContext
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])

DROPPED_REASON = "Balance sync lagged behind, reconnect"


async def _receive_until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _serve(websocket: WebSocket, context: SessionContext) -> bool:
    """Держать соединение, пока клиент не отключится или реестр его не отбросит.

    Returns:
        True если соединение отброшено реестром.
    """
    receiver = asyncio.create_task(_receive_until_disconnect(websocket))
    dropped = asyncio.create_task(context.wait_dropped())
    try:
        await asyncio.wait({receiver, dropped}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        receiver.cancel()
        dropped.cancel()
        await asyncio.wait({receiver, dropped})
    return context.dropped


@router.websocket("/ws")
async def balance_channel(websocket: WebSocket) -> None:
    """Подписать соединение на события баланса аккаунта."""
    tokens = cast("SessionTokens", websocket.app.state.session_tokens)
    registry = cast("ConnectionRegistry", websocket.app.state.connections)

    try:
        account_id = tokens.verify(websocket.query_params.get("token", ""))
    except IdentityVerificationError as e:
        logger.info("WebSocket отклонён: %s", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    async with registry.session(account_id, websocket.send_json) as context:
        logger.info(
            "WebSocket подключён: аккаунт %d, соединение %d",
            account_id,
            context.connection_id,
        )
        was_dropped = await _serve(websocket, context)

    if was_dropped:
        logger.warning(
            "WebSocket закрыт: аккаунт %d, соединение %d отброшено реестром",
            account_id,
            context.connection_id,
        )
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=DROPPED_REASON)
        return

    logger.info(
        "WebSocket отключён: аккаунт %d, соединение %d",
        account_id,
        context.connection_id,
    )
