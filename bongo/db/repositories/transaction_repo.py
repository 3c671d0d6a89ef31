"""Репозиторий для работы с леджером токенов.

Содержит все операции с таблицей token_transactions:
- Запись транзакции (без commit — вызывающий коммитит вместе с балансом)
- Поиск списания по ID и по request_id клиента
- Переходы статуса списания consumed → settled → refunded
- История транзакций аккаунта
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bongo.db.models.transaction import ChargeStatus, TokenTransaction, TransactionType


class TransactionRepository:
    """Репозиторий для работы с транзакциями.

    Пример использования:
        async with get_async_session_factory()() as session:
            repo = TransactionRepository(session)
            charge = await repo.get_charge(account_id=1, charge_id=42)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def add(
        self,
        account_id: int,
        type_: TransactionType,
        amount: int,
        balance_after: int,
        description: str,
        *,
        category: str | None = None,
        model_key: str | None = None,
        endpoint: str | None = None,
        request_id: str | None = None,
        status: ChargeStatus | None = None,
        related_id: int | None = None,
    ) -> TokenTransaction:
        """Записать транзакцию (flush без commit).

        Args:
            account_id: ID аккаунта.
            type_: Тип транзакции.
            amount: Сумма (+ начисление, - списание).
            balance_after: Баланс после операции.
            description: Описание для истории.
            category: Категория генерации.
            model_key: Ключ модели.
            endpoint: Эндпоинт, для которого списаны токены.
            request_id: ID запроса клиента.
            status: Статус списания.
            related_id: ID связанной транзакции (для возврата).

        Returns:
            Транзакция с заполненным id.
        """
        transaction = TokenTransaction(
            account_id=account_id,
            type=type_.value,
            amount=amount,
            balance_after=balance_after,
            description=description,
            category=category,
            model_key=model_key,
            endpoint=endpoint,
            request_id=request_id,
            status=status.value if status is not None else None,
            related_id=related_id,
        )
        self._session.add(transaction)
        await self._session.flush()
        return transaction

    async def get_charge(self, account_id: int, charge_id: int) -> TokenTransaction | None:
        """Найти списание аккаунта по ID.

        Чужие списания не находятся: account_id входит в условие.

        Args:
            account_id: ID аккаунта.
            charge_id: ID списания.

        Returns:
            Транзакция типа CONSUMPTION или None.
        """
        stmt = (
            select(TokenTransaction)
            .where(
                TokenTransaction.id == charge_id,
                TokenTransaction.account_id == account_id,
                TokenTransaction.type == TransactionType.CONSUMPTION.value,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_request_id(
        self, account_id: int, request_id: str
    ) -> TokenTransaction | None:
        """Найти списание по ID запроса клиента.

        Args:
            account_id: ID аккаунта.
            request_id: ID запроса, переданный клиентом.

        Returns:
            Транзакция или None.
        """
        stmt = select(TokenTransaction).where(
            TokenTransaction.account_id == account_id,
            TokenTransaction.request_id == request_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def transition(
        self, charge_id: int, from_status: ChargeStatus, to_status: ChargeStatus
    ) -> bool:
        """Перевести списание в новый статус.

        Условный UPDATE: из двух параллельных переходов сработает один.

        Args:
            charge_id: ID списания.
            from_status: Ожидаемый текущий статус.
            to_status: Новый статус.

        Returns:
            True если статус изменён, False если текущий статус другой.
        """
        stmt = (
            update(TokenTransaction)
            .where(
                TokenTransaction.id == charge_id,
                TokenTransaction.status == from_status.value,
            )
            .values(status=to_status.value)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def get_history(
        self, account_id: int, limit: int = 20, offset: int = 0
    ) -> list[TokenTransaction]:
        """История транзакций аккаунта (новые первыми).

        Args:
            account_id: ID аккаунта.
            limit: Максимальное количество записей.
            offset: Смещение от начала (для пагинации).

        Returns:
            Список транзакций.
        """
        stmt = (
            select(TokenTransaction)
            .where(TokenTransaction.account_id == account_id)
            .order_by(TokenTransaction.created_at.desc(), TokenTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
