"""Вход пользователя и разбор токена сессии.

Вход:
1. Внешний сервис подтверждает личность (Google)
2. Аккаунт находится по subject или создаётся, профиль обновляется
3. При первом входе начисляется бонус (один раз на аккаунт)
4. Выдаётся токен сессии
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from bongo.core.exceptions import IdentityVerificationError
from bongo.db.models.account import Account
from bongo.db.repositories.account_repo import AccountRepository
from bongo.identity.google import IdentityVerifier
from bongo.identity.tokens import SessionTokens
from bongo.services.token_meter import TokenMeter
from bongo.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LoginResult:
    """Результат входа.

    Attributes:
        account: Аккаунт (с актуальным балансом).
        token: Токен сессии.
        created: Аккаунт создан при этом входе.
        bonus: Начисленный бонус (0 если не начислялся).
    """

    account: Account
    token: str
    created: bool
    bonus: int


class LoginService:
    """Сервис входа.

    Использует Dependency Injection — сессия и внешние сервисы
    передаются в конструктор.
    """

    def __init__(
        self,
        session: AsyncSession,
        tokens: SessionTokens,
        meter: TokenMeter,
        verifier: IdentityVerifier | None = None,
    ) -> None:
        self._accounts = AccountRepository(session)
        self._tokens = tokens
        self._meter = meter
        self._verifier = verifier

    async def login(self, credential: str) -> LoginResult:
        """Войти по credential внешнего сервиса.

        Args:
            credential: ID-токен Google.

        Returns:
            LoginResult.

        Raises:
            IdentityVerificationError: Личность не подтверждена или вход
                через Google не настроен.
        """
        if self._verifier is None:
            raise IdentityVerificationError("Google login is not configured")

        identity = await self._verifier.verify(credential)
        account, created = await self._accounts.get_or_create(
            identity.subject,
            email=identity.email,
            name=identity.name,
            given_name=identity.given_name,
            family_name=identity.family_name,
            picture=identity.picture,
        )

        bonus = await self._meter.grant_signup_bonus(account.id)
        if bonus:
            refreshed = await self._accounts.get_by_id(account.id)
            if refreshed is not None:
                account = refreshed

        logger.info(
            "Вход: account_id=%d, новый=%s, бонус=%d",
            account.id,
            created,
            bonus,
        )
        return LoginResult(
            account=account,
            token=self._tokens.issue(account.id),
            created=created,
            bonus=bonus,
        )

    async def resolve(self, token: str) -> Account:
        """Найти аккаунт по токену сессии.

        Raises:
            IdentityVerificationError: Токен невалиден или аккаунт удалён.
        """
        account_id = self._tokens.verify(token)
        account = await self._accounts.get_by_id(account_id)
        if account is None:
            raise IdentityVerificationError("Account not found")
        return account
