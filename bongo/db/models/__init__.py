"""Модели базы данных (таблицы).

Все модели наследуются от Base (из db.models_base).
"""

from bongo.db.models.account import Account
from bongo.db.models.transaction import ChargeStatus, TokenTransaction, TransactionType

__all__ = [
    "Account",
    "ChargeStatus",
    "TokenTransaction",
    "TransactionType",
]
