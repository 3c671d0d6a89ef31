"""Синхронизация баланса между открытыми сессиями (WebSocket)."""

from bongo.realtime.hub import (
    BalanceEvent,
    BalanceEventType,
    ConnectionRegistry,
    SessionContext,
)

__all__ = [
    "BalanceEvent",
    "BalanceEventType",
    "ConnectionRegistry",
    "SessionContext",
]
