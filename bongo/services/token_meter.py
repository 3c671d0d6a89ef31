"""Учёт токенов (проверка, списание, возврат, начисление).

Состояния одного запроса на генерацию:

    Idle → Checked → Consumed → Settled
                         ↘ (refund_on_failure) Refunded

- check() — только чтение, НЕ резервирует токены. Между check() и
  consume() баланс может измениться в другой сессии, поэтому consume()
  проверяет баланс заново атомарным UPDATE.
- consume() — необратимое списание. Генерация без успешного consume()
  не выполняется. Возвращает chargeId — ID записи в леджере.
- claim() — привязать списание к одной генерации (consumed → settled).
  Повторно использовать chargeId нельзя.
- refund() — вернуть токены за списание (settled → refunded).

После каждого изменения баланса всем открытым сессиям аккаунта
уходит событие с новым балансом (ConnectionRegistry.publish).

Пример использования:
    async with get_async_session_factory()() as session:
        meter = create_token_meter(session, hub=registry)

        check = await meter.check(account_id, GenerationCategory.IMAGE)
        if check.has_enough:
            charge = await meter.consume(account_id, GenerationCategory.IMAGE, "nova-canvas")
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bongo.config.yaml_config import BillingConfig, YamlConfig
from bongo.core.exceptions import (
    AccountNotFoundError,
    ChargeAlreadyUsedError,
    ChargeCategoryMismatchError,
    ChargeNotFoundError,
    ConsumptionError,
    InsufficientBalanceError,
    RequestIdConflictError,
)
from bongo.db.models.transaction import ChargeStatus, TokenTransaction, TransactionType
from bongo.db.repositories.account_repo import AccountRepository
from bongo.db.repositories.transaction_repo import TransactionRepository
from bongo.providers.ai.base import GenerationCategory
from bongo.realtime.hub import BalanceEvent, BalanceEventType, ConnectionRegistry
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINT = "/api/chat"


@dataclass
class BalanceCheck:
    """Результат проверки баланса (не резервирует токены).

    Attributes:
        has_enough: Хватает ли токенов на момент проверки.
        required: Стоимость генерации.
        available: Текущий баланс.
    """

    has_enough: bool
    required: int
    available: int


@dataclass
class ChargeResult:
    """Результат списания.

    Attributes:
        charge_id: ID списания (chargeId для клиента).
        cost: Сколько токенов списано.
        remaining_tokens: Баланс после списания.
        total_api_calls: Счётчик вызовов после списания.
        replayed: True если это повтор запроса с тем же requestId
            (повторного списания не было).
    """

    charge_id: int
    cost: int
    remaining_tokens: int
    total_api_calls: int
    replayed: bool = False


@dataclass
class BalanceChange:
    """Результат начисления или возврата.

    Attributes:
        amount: Сколько токенов начислено.
        tokens: Баланс после операции.
        total_api_calls: Счётчик вызовов (не меняется при начислении).
        transaction_id: ID записи в леджере.
    """

    amount: int
    tokens: int
    total_api_calls: int
    transaction_id: int


class TokenMeter:
    """Сервис учёта токенов.

    Использует Dependency Injection — сессия, конфигурация и реестр
    соединений передаются в конструктор.
    """

    def __init__(
        self,
        session: AsyncSession,
        config: BillingConfig,
        hub: ConnectionRegistry | None = None,
    ) -> None:
        """Инициализировать сервис.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            config: Настройки токенов (стоимость, бонус, политика возврата).
            hub: Реестр соединений для событий баланса (None = без событий).
        """
        self._session = session
        self._config = config
        self._hub = hub
        self._accounts = AccountRepository(session)
        self._transactions = TransactionRepository(session)

    @property
    def config(self) -> BillingConfig:
        """Настройки токенов."""
        return self._config

    def cost_for(self, category: GenerationCategory) -> int:
        """Стоимость генерации категории (не зависит от модели)."""
        return self._config.cost_for(category)

    async def get_balance(self, account_id: int) -> tuple[int, int]:
        """Текущий баланс и счётчик вызовов.

        Raises:
            AccountNotFoundError: Аккаунта нет.
        """
        balance = await self._accounts.get_balance(account_id)
        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    async def check(
        self,
        account_id: int,
        category: GenerationCategory,
        model_key: str | None = None,
    ) -> BalanceCheck:
        """Проверить, хватает ли токенов.

        Только чтение: повторный вызов без других операций даёт тот же
        результат. Токены НЕ резервируются — окончательное решение
        принимает consume().

        Args:
            account_id: ID аккаунта.
            category: Категория генерации.
            model_key: Ключ модели (на стоимость не влияет).

        Returns:
            BalanceCheck.

        Raises:
            AccountNotFoundError: Аккаунта нет.
        """
        required = self.cost_for(category)
        available, _ = await self.get_balance(account_id)
        return BalanceCheck(
            has_enough=available >= required,
            required=required,
            available=available,
        )

    async def consume(
        self,
        account_id: int,
        category: GenerationCategory,
        model_key: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        request_id: str | None = None,
        settle: bool = False,
    ) -> ChargeResult:
        """Списать токены за генерацию.

        Списание, увеличение счётчика вызовов и запись в леджер —
        одна транзакция БД. При нехватке токенов баланс не меняется.

        Args:
            account_id: ID аккаунта.
            category: Категория генерации.
            model_key: Ключ модели.
            endpoint: Эндпоинт, для которого списываются токены.
            request_id: ID запроса клиента. Повтор с тем же ID возвращает
                исходное списание без повторного списания. Повтор с другими
                категорией или моделью отклоняется.
            settle: Сразу привязать списание к генерации (статус settled).

        Returns:
            ChargeResult.

        Raises:
            InsufficientBalanceError: Токенов меньше стоимости.
            RequestIdConflictError: requestId уже использован для другой генерации.
            AccountNotFoundError: Аккаунта нет.
            ConsumptionError: Техническая ошибка БД.
        """
        if request_id:
            existing = await self._transactions.get_by_request_id(account_id, request_id)
            if existing is not None:
                return await self._replayed(existing, category, model_key)

        cost = self.cost_for(category)

        try:
            balance = await self._accounts.debit(account_id, cost)
            if balance is None:
                check = await self.check(account_id, category, model_key)
                logger.info(
                    "Недостаточно токенов: account_id=%d, category=%s, "
                    "required=%d, available=%d",
                    account_id,
                    category.value,
                    check.required,
                    check.available,
                )
                raise InsufficientBalanceError(
                    account_id, category.value, check.required, check.available
                )

            tokens, total_api_calls = balance
            charge = await self._transactions.add(
                account_id,
                TransactionType.CONSUMPTION,
                amount=-cost,
                balance_after=tokens,
                description=f"Generation: {category.value} ({model_key})",
                category=category.value,
                model_key=model_key,
                endpoint=endpoint,
                request_id=request_id,
                status=ChargeStatus.SETTLED if settle else ChargeStatus.CONSUMED,
            )
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            if request_id:
                # Параллельный повтор с тем же requestId успел записать списание
                existing = await self._transactions.get_by_request_id(
                    account_id, request_id
                )
                if existing is not None:
                    return await self._replayed(existing, category, model_key)
            raise ConsumptionError("Failed to consume tokens", original_error=e) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.exception("Ошибка списания токенов: account_id=%d", account_id)
            raise ConsumptionError("Failed to consume tokens", original_error=e) from e

        logger.info(
            "Списание: account_id=%d, charge_id=%d, category=%s, model=%s, "
            "cost=%d, balance=%d",
            account_id,
            charge.id,
            category.value,
            model_key,
            cost,
            tokens,
        )
        self._publish(account_id, BalanceEventType.TOKENS_CONSUMED, tokens, total_api_calls)

        return ChargeResult(
            charge_id=charge.id,
            cost=cost,
            remaining_tokens=tokens,
            total_api_calls=total_api_calls,
        )

    async def claim(
        self, account_id: int, charge_id: int, category: GenerationCategory
    ) -> TokenTransaction:
        """Привязать списание к генерации (consumed → settled).

        Args:
            account_id: ID аккаунта.
            charge_id: ID списания из consume().
            category: Категория генерации, для которой используется списание.

        Returns:
            Транзакция списания.

        Raises:
            ChargeNotFoundError: Списания нет (или оно чужое).
            ChargeCategoryMismatchError: Списание за другую категорию.
            ChargeAlreadyUsedError: Списание уже использовано или возвращено.
        """
        charge = await self._transactions.get_charge(account_id, charge_id)
        if charge is None:
            raise ChargeNotFoundError(charge_id)
        if charge.category != category.value:
            raise ChargeCategoryMismatchError(
                charge_id, charge.category or "", category.value
            )

        claimed = await self._transactions.transition(
            charge_id, ChargeStatus.CONSUMED, ChargeStatus.SETTLED
        )
        if not claimed:
            raise ChargeAlreadyUsedError(charge_id, charge.status or "unknown")

        await self._session.commit()
        charge.status = ChargeStatus.SETTLED.value
        logger.debug("Списание %d привязано к генерации", charge_id)
        return charge

    async def refund(self, account_id: int, charge_id: int, reason: str) -> BalanceChange:
        """Вернуть токены за списание (settled → refunded).

        Счётчик вызовов не уменьшается: вызов провайдера состоялся.

        Args:
            account_id: ID аккаунта.
            charge_id: ID списания.
            reason: Причина возврата (для истории).

        Returns:
            BalanceChange.

        Raises:
            ChargeNotFoundError: Списания нет.
            ChargeAlreadyUsedError: Списание не в статусе settled.
        """
        charge = await self._transactions.get_charge(account_id, charge_id)
        if charge is None:
            raise ChargeNotFoundError(charge_id)

        refunded = await self._transactions.transition(
            charge_id, ChargeStatus.SETTLED, ChargeStatus.REFUNDED
        )
        if not refunded:
            raise ChargeAlreadyUsedError(charge_id, charge.status or "unknown")

        change = await self._credit(
            account_id,
            charge.cost,
            TransactionType.REFUND,
            f"Refund: {reason}"[:255],
            category=charge.category,
            model_key=charge.model_key,
            related_id=charge_id,
        )
        logger.info(
            "Возврат: account_id=%d, charge_id=%d, amount=%d, balance=%d",
            account_id,
            charge_id,
            change.amount,
            change.tokens,
        )
        return change

    async def grant(self, account_id: int, amount: int, description: str) -> BalanceChange:
        """Начислить токены вне генераций (ручное пополнение).

        Raises:
            ValueError: amount <= 0.
            AccountNotFoundError: Аккаунта нет.
        """
        if amount <= 0:
            raise ValueError("amount must be positive")

        change = await self._credit(account_id, amount, TransactionType.GRANT, description)
        logger.info(
            "Начисление: account_id=%d, amount=%d, balance=%d",
            account_id,
            amount,
            change.tokens,
        )
        return change

    async def grant_signup_bonus(self, account_id: int) -> int:
        """Начислить бонус за первый вход (один раз на аккаунт).

        Флаг has_received_signup_bonus выставляется условным UPDATE
        в той же транзакции, что и начисление.

        Returns:
            Количество начисленных токенов (0 если уже начислялся или отключён).
        """
        bonus = self._config.signup_bonus
        if bonus <= 0:
            return 0

        if not await self._accounts.mark_signup_bonus(account_id):
            logger.debug("Бонус уже был начислен ранее: account_id=%d", account_id)
            return 0

        change = await self._credit(
            account_id, bonus, TransactionType.SIGNUP_BONUS, "Signup bonus"
        )
        logger.info(
            "Начислен бонус за первый вход: account_id=%d, amount=%d, balance=%d",
            account_id,
            bonus,
            change.tokens,
        )
        return bonus

    async def _credit(
        self,
        account_id: int,
        amount: int,
        type_: TransactionType,
        description: str,
        *,
        category: str | None = None,
        model_key: str | None = None,
        related_id: int | None = None,
    ) -> BalanceChange:
        balance = await self._accounts.credit(account_id, amount)
        if balance is None:
            raise AccountNotFoundError(account_id)

        tokens, total_api_calls = balance
        transaction = await self._transactions.add(
            account_id,
            type_,
            amount=amount,
            balance_after=tokens,
            description=description,
            category=category,
            model_key=model_key,
            related_id=related_id,
        )
        await self._session.commit()

        self._publish(account_id, BalanceEventType.TOKENS_ADDED, tokens, total_api_calls)
        return BalanceChange(
            amount=amount,
            tokens=tokens,
            total_api_calls=total_api_calls,
            transaction_id=transaction.id,
        )

    async def _replayed(
        self, charge: TokenTransaction, category: GenerationCategory, model_key: str
    ) -> ChargeResult:
        if charge.category != category.value or charge.model_key != model_key:
            logger.warning(
                "Конфликт requestId: account_id=%d, charge_id=%d, было %s/%s, запрошено %s/%s",
                charge.account_id,
                charge.id,
                charge.category,
                charge.model_key,
                category.value,
                model_key,
            )
            raise RequestIdConflictError(
                charge.request_id or "", charge.id, f"{charge.category} ({charge.model_key})"
            )
        tokens, total_api_calls = await self.get_balance(charge.account_id)
        logger.info(
            "Повтор списания по requestId: account_id=%d, charge_id=%d",
            charge.account_id,
            charge.id,
        )
        return ChargeResult(
            charge_id=charge.id,
            cost=charge.cost,
            remaining_tokens=tokens,
            total_api_calls=total_api_calls,
            replayed=True,
        )

    def _publish(
        self,
        account_id: int,
        type_: BalanceEventType,
        tokens: int,
        total_api_calls: int,
    ) -> None:
        if self._hub is None:
            return
        self._hub.publish(
            account_id,
            BalanceEvent(type=type_, tokens=tokens, total_api_calls=total_api_calls),
        )


def create_token_meter(
    session: AsyncSession,
    yaml_config: YamlConfig | None = None,
    hub: ConnectionRegistry | None = None,
) -> TokenMeter:
    """Создать экземпляр TokenMeter (factory function).

    Использует глобальный yaml_config если не передан явно.

    Args:
        session: Асинхронная сессия SQLAlchemy.
        yaml_config: YAML-конфигурация (опционально).
        hub: Реестр соединений для событий баланса.

    Returns:
        Настроенный экземпляр TokenMeter.
    """
    if yaml_config is None:
        from bongo.config.yaml_config import yaml_config as global_yaml_config

        yaml_config = global_yaml_config

    return TokenMeter(session=session, config=yaml_config.billing, hub=hub)
