"""Канал синхронизации баланса в реальном времени.

Каждое открытое WebSocket-соединение — это отдельный SessionContext:
своя FIFO-очередь событий и своя задача-отправитель. Реестр
соединений хранит контексты по ID аккаунта.

Гарантии:
- Событие получают ВСЕ живые соединения аккаунта
- Порядок событий одного аккаунта сохраняется (очередь FIFO,
  publish() синхронно кладёт событие во все очереди)
- Мёртвое или зависшее соединение удаляется из реестра и не мешает остальным;
  владелец соединения узнаёт об этом через SessionContext.wait_dropped()

События несут абсолютные значения баланса, поэтому пропуск
события клиентом не приводит к накоплению ошибки.
"""

import asyncio
import itertools
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from bongo.utils.logging import get_logger

logger = get_logger(__name__)

# Функция отправки JSON в соединение (например, WebSocket.send_json)
Sender = Callable[[dict[str, Any]], Awaitable[None]]

# Сколько событий может накопиться у медленного клиента до отключения
MAX_PENDING_EVENTS = 100


class BalanceEventType(StrEnum):
    """Тип изменения баланса."""

    TOKENS_CONSUMED = "tokensConsumed"
    TOKENS_ADDED = "tokensAdded"


@dataclass(frozen=True)
class BalanceEvent:
    """Событие изменения баланса.

    Attributes:
        type: Списание или начисление.
        tokens: Баланс ПОСЛЕ изменения.
        total_api_calls: Счётчик вызовов ПОСЛЕ изменения.
    """

    type: BalanceEventType
    tokens: int
    total_api_calls: int

    def to_dict(self) -> dict[str, Any]:
        """Сериализовать в формат клиента."""
        return {
            "type": self.type.value,
            "tokens": self.tokens,
            "totalApiCalls": self.total_api_calls,
        }


class SessionContext:
    """Одно соединение аккаунта.

    События кладутся в очередь синхронно, а отправляются
    отдельной задачей: медленный клиент не блокирует publish().
    Если соединение не успевает получать события или отправка упала,
    контекст помечается отброшенным (см. wait_dropped), и владелец
    соединения должен его закрыть.
    """

    def __init__(self, connection_id: int, account_id: int, send: Sender) -> None:
        self.connection_id = connection_id
        self.account_id = account_id
        self._send = send
        self._queue: asyncio.Queue[BalanceEvent] = asyncio.Queue(maxsize=MAX_PENDING_EVENTS)
        self._task: asyncio.Task[None] | None = None
        self._alive = True
        self._dropped = asyncio.Event()

    @property
    def alive(self) -> bool:
        """Соединение живо и принимает события."""
        return self._alive

    @property
    def dropped(self) -> bool:
        """Реестр отключил соединение (переполнение очереди или ошибка отправки)."""
        return self._dropped.is_set()

    async def wait_dropped(self) -> None:
        """Дождаться, пока реестр отключит соединение."""
        await self._dropped.wait()

    def start(self) -> None:
        """Запустить задачу-отправитель."""
        self._task = asyncio.create_task(
            self._run(), name=f"sync-sender-{self.connection_id}"
        )

    def enqueue(self, event: BalanceEvent) -> bool:
        """Поставить событие в очередь.

        Returns:
            False если соединение мертво или очередь переполнена.
        """
        if not self._alive:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Соединение %d (аккаунт %d) не успевает получать события, отключаем",
                self.connection_id,
                self.account_id,
            )
            self._drop()
            return False
        return True

    def _drop(self) -> None:
        self._alive = False
        self._dropped.set()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if not self._alive:
                return
            try:
                await self._send(event.to_dict())
            except Exception:
                # Клиент отключился между проверкой и отправкой
                logger.info(
                    "Соединение %d (аккаунт %d) закрыто при отправке события",
                    self.connection_id,
                    self.account_id,
                    exc_info=True,
                )
                self._drop()
                return

    async def close(self) -> None:
        """Остановить отправителя (недоставленные события отбрасываются).

        Зависшая отправка прерывается.
        """
        self._alive = False
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        await asyncio.wait({self._task})


class ConnectionRegistry:
    """Реестр соединений по аккаунтам.

    Пример использования:
        async with registry.session(account_id, websocket.send_json):
            ...  # соединение получает события, пока открыт блок

        registry.publish(account_id, BalanceEvent(...))
    """

    def __init__(self) -> None:
        self._sessions: dict[int, dict[int, SessionContext]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, account_id: int, send: Sender) -> SessionContext:
        """Подписать соединение на события аккаунта.

        Args:
            account_id: ID аккаунта.
            send: Функция отправки JSON в соединение.

        Returns:
            Контекст соединения (нужен для unsubscribe).
        """
        context = SessionContext(next(self._ids), account_id, send)
        context.start()
        self._sessions.setdefault(account_id, {})[context.connection_id] = context
        logger.debug(
            "Подписка: аккаунт %d, соединение %d (всего %d)",
            account_id,
            context.connection_id,
            self.connection_count(account_id),
        )
        return context

    async def unsubscribe(self, context: SessionContext) -> None:
        """Отписать соединение и остановить его отправителя."""
        self._discard(context)
        await context.close()
        logger.debug(
            "Отписка: аккаунт %d, соединение %d",
            context.account_id,
            context.connection_id,
        )

    @asynccontextmanager
    async def session(self, account_id: int, send: Sender) -> AsyncIterator[SessionContext]:
        """Подписка на время жизни блока async with."""
        context = self.subscribe(account_id, send)
        try:
            yield context
        finally:
            await self.unsubscribe(context)

    def publish(self, account_id: int, event: BalanceEvent) -> int:
        """Отправить событие всем соединениям аккаунта.

        Args:
            account_id: ID аккаунта.
            event: Событие изменения баланса.

        Returns:
            Сколько соединений приняли событие в очередь.
        """
        contexts = list(self._sessions.get(account_id, {}).values())
        delivered = 0
        for context in contexts:
            if context.enqueue(event):
                delivered += 1
            else:
                self._discard(context)

        logger.debug(
            "Событие %s для аккаунта %d: tokens=%d, соединений=%d",
            event.type.value,
            account_id,
            event.tokens,
            delivered,
        )
        return delivered

    def connection_count(self, account_id: int) -> int:
        """Количество открытых соединений аккаунта."""
        return len(self._sessions.get(account_id, {}))

    async def close_all(self) -> None:
        """Остановить все отправители (при остановке приложения)."""
        contexts = [c for by_id in self._sessions.values() for c in by_id.values()]
        self._sessions.clear()
        for context in contexts:
            await context.close()

    def _discard(self, context: SessionContext) -> None:
        by_id = self._sessions.get(context.account_id)
        if by_id is None:
            return
        by_id.pop(context.connection_id, None)
        if not by_id:
            del self._sessions[context.account_id]
