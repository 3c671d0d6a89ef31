"""Репозиторий для работы с аккаунтами.

Содержит все операции с таблицей accounts:
- Вход: поиск или создание по внешнему ID, обновление профиля
- Атомарное списание «если хватает» и начисление токенов
- Отметка о начислении бонуса за первый вход

Методы изменения баланса НЕ делают commit: списание и запись в леджер
должны попасть в одну транзакцию, commit выполняет TokenMeter.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bongo.db.models.account import Account
from bongo.utils.timezone import utc_now


class AccountRepository:
    """Репозиторий для работы с аккаунтами.

    Использует Dependency Injection — сессия передаётся в конструктор.

    Пример использования:
        async with get_async_session_factory()() as session:
            repo = AccountRepository(session)
            balance = await repo.debit(account_id=1, cost=2)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def get_by_id(self, account_id: int) -> Account | None:
        """Найти аккаунт по внутреннему ID.

        Данные всегда перечитываются из БД: баланс мог измениться
        атомарным UPDATE в обход identity map.

        Args:
            account_id: Внутренний ID аккаунта.

        Returns:
            Account если найден, None если не существует.
        """
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: str) -> Account | None:
        """Найти аккаунт по внешнему ID (Google "sub").

        Args:
            external_id: Subject подтверждённой личности.

        Returns:
            Account если найден, None если не существует.
        """
        stmt = select(Account).where(Account.external_id == external_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_balance(self, account_id: int) -> tuple[int, int] | None:
        """Прочитать баланс и счётчик вызовов.

        Args:
            account_id: ID аккаунта.

        Returns:
            Кортеж (tokens, total_api_calls) или None если аккаунта нет.
        """
        stmt = select(Account.tokens, Account.total_api_calls).where(
            Account.id == account_id
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return row.tokens, row.total_api_calls

    async def get_or_create(
        self,
        external_id: str,
        *,
        email: str | None = None,
        name: str | None = None,
        given_name: str | None = None,
        family_name: str | None = None,
        picture: str | None = None,
    ) -> tuple[Account, bool]:
        """Найти аккаунт при входе или создать новый.

        Профиль обновляется при каждом входе (имя и аватар в Google
        могут меняться), last_login выставляется в текущее время.
        Если два входа создают аккаунт одновременно, один из них получит
        IntegrityError и повторит поиск.

        Args:
            external_id: Subject подтверждённой личности.
            email: Email.
            name: Отображаемое имя.
            given_name: Имя.
            family_name: Фамилия.
            picture: URL аватара.

        Returns:
            Кортеж (account, created).
        """
        profile = {
            "email": email,
            "name": name,
            "given_name": given_name,
            "family_name": family_name,
            "picture": picture,
        }

        account = await self.get_by_external_id(external_id)
        if account is not None:
            for field, value in profile.items():
                if value is not None:
                    setattr(account, field, value)
            account.last_login = utc_now()
            await self._session.commit()
            return account, False

        account = Account(external_id=external_id, last_login=utc_now(), **profile)
        self._session.add(account)
        try:
            await self._session.commit()
        except IntegrityError:
            # Другой запрос успел создать аккаунт, откатываем и ищем снова
            await self._session.rollback()
            existing = await self.get_by_external_id(external_id)
            if existing is None:
                raise
            return existing, False

        await self._session.refresh(account)
        return account, True

    async def debit(self, account_id: int, cost: int) -> tuple[int, int] | None:
        """Списать токены, если их хватает.

        Одна UPDATE-операция с условием tokens >= cost: проверка и списание
        атомарны, параллельные списания не уводят баланс в минус.
        Счётчик вызовов увеличивается вместе со списанием.

        Args:
            account_id: ID аккаунта.
            cost: Сколько списать (>= 0).

        Returns:
            Кортеж (tokens, total_api_calls) после списания
            или None, если токенов не хватило (баланс не изменён).
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.tokens >= cost)
            .values(
                tokens=Account.tokens - cost,
                total_api_calls=Account.total_api_calls + 1,
            )
            .returning(Account.tokens, Account.total_api_calls)
            .execution_options(synchronize_session=False)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return row.tokens, row.total_api_calls

    async def credit(self, account_id: int, amount: int) -> tuple[int, int] | None:
        """Начислить токены.

        Args:
            account_id: ID аккаунта.
            amount: Сколько начислить (> 0).

        Returns:
            Кортеж (tokens, total_api_calls) после начисления
            или None, если аккаунта нет.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(tokens=Account.tokens + amount)
            .returning(Account.tokens, Account.total_api_calls)
            .execution_options(synchronize_session=False)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return row.tokens, row.total_api_calls

    async def mark_signup_bonus(self, account_id: int) -> bool:
        """Отметить начисление бонуса за первый вход.

        Флаг выставляется условным UPDATE, поэтому бонус нельзя
        начислить дважды даже при параллельных входах.

        Args:
            account_id: ID аккаунта.

        Returns:
            True если флаг выставлен сейчас, False если уже был.
        """
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.has_received_signup_bonus.is_(False),
            )
            .values(has_received_signup_bonus=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1
