"""Репозитории для работы с данными.

Репозиторий инкапсулирует логику доступа к данным: сервисы вызывают
методы репозитория вместо прямых SQL-запросов.
"""

from bongo.db.repositories.account_repo import AccountRepository
from bongo.db.repositories.transaction_repo import TransactionRepository

__all__ = [
    "AccountRepository",
    "TransactionRepository",
]
