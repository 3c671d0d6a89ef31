"""Модель транзакции (леджер баланса токенов).

Транзакция — запись о любом изменении баланса аккаунта:
- Бонус за первый вход
- Списание токенов за генерацию
- Возврат токенов при недоступности провайдера
- Ручное начисление

Запись о списании одновременно является «чеком» (charge): её ID
отдаётся клиенту как chargeId, а поле status показывает, использован
ли чек генерацией. Сумма и balance_after после записи не меняются.
"""

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing_extensions import override

from bongo.db.models_base import Base

if TYPE_CHECKING:
    from bongo.db.models.account import Account


class TransactionType(StrEnum):
    """Тип транзакции — причина изменения баланса.

    Значения:
        SIGNUP_BONUS: Бонус за первый вход (config.yaml → billing.signup_bonus).
        CONSUMPTION: Списание за генерацию (config.yaml → billing.costs).
        REFUND: Возврат списания (только при failure_policy=refund_on_failure).
        GRANT: Ручное начисление.
    """

    SIGNUP_BONUS = "signup_bonus"
    CONSUMPTION = "consumption"
    REFUND = "refund"
    GRANT = "grant"


class ChargeStatus(StrEnum):
    """Статус списания (только для CONSUMPTION).

    consumed → settled → refunded. Переходы только вперёд.

    Значения:
        CONSUMED: Токены списаны, генерация ещё не привязана.
        SETTLED: Списание использовано одной генерацией.
        REFUNDED: Токены возвращены на баланс.
    """

    CONSUMED = "consumed"
    SETTLED = "settled"
    REFUNDED = "refunded"


class TokenTransaction(Base):
    """Транзакция — запись об изменении баланса аккаунта.

    Attributes:
        id: ID транзакции (для списаний — chargeId).
        account_id: ID аккаунта (FK → accounts.id).
        type: Тип транзакции (TransactionType).
        amount: Сумма. Положительная = начисление, отрицательная = списание.
        balance_after: Баланс аккаунта ПОСЛЕ этой транзакции.
        description: Описание для истории.
        category: Категория генерации (для списаний и возвратов).
        model_key: Ключ модели (для списаний и возвратов).
        endpoint: Эндпоинт, для которого списаны токены (/api/chat).
        request_id: ID запроса клиента — повтор с тем же ID не списывает дважды.
        status: Статус списания (ChargeStatus) или None.
        related_id: Для возврата — ID исходного списания.
        created_at: Дата и время создания.
    """

    __tablename__ = "token_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    balance_after: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str | None] = mapped_column(String(16), nullable=True)
    model_key: Mapped[str | None] = mapped_column(String(128), nullable=True)
    endpoint: Mapped[str | None] = mapped_column(String(128), nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    related_id: Mapped[int | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        back_populates="transactions",
        lazy="noload",
    )

    __table_args__ = (
        # NULL в request_id не участвует в уникальности
        UniqueConstraint("account_id", "request_id", name="uq_token_tx_request"),
        Index("ix_token_tx_account_created", "account_id", "created_at"),
    )

    @property
    def cost(self) -> int:
        """Стоимость списания (положительное число)."""
        return -self.amount

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<TokenTransaction(id={self.id}, account_id={self.account_id}, "
            f"type={self.type}, amount={self.amount}, "
            f"balance_after={self.balance_after}, status={self.status})>"
        )
