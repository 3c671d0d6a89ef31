"""Централизованные исключения приложения.

Этот модуль содержит ВСЕ кастомные исключения проекта.
Централизация исключений обеспечивает:
- Единый источник правды для всех типов ошибок
- Единообразную иерархию исключений
- Удобный импорт: `from bongo.core.exceptions import SomeError`

Организация исключений по доменам:
- Database: Ошибки работы с БД
- Generation Request: Ошибки запроса и конфигурации
- Providers: Ошибки вызова Bedrock и разбора ответа
- Token Meter: Ошибки списания и возврата токенов
- Identity: Ошибки входа и сессий

HTTP-слой (bongo/api/errors.py) преобразует эти исключения в JSON-ответы
{error, details} с нужным статус-кодом.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from typing_extensions import override

if TYPE_CHECKING:
    from bongo.providers.ai.base import InvocationOutcome

# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================
# Исключения для работы с базой данных.
# Иерархия: DatabaseError -> AccountNotFoundError
# =============================================================================


class DatabaseError(Exception):
    """Базовое исключение для ошибок работы с БД.

    Используется как родительский класс для всех ошибок БД.
    Может быть потенциально восстановимым (retry) в зависимости от причины.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        """Создать исключение БД.

        Args:
            message: Описание ошибки.
            retryable: Можно ли повторить операцию (True для временных сбоев).
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class AccountNotFoundError(DatabaseError):
    """Аккаунт не найден в базе данных.

    Невосстановимая ошибка — токен сессии ссылается на удалённый аккаунт.
    """

    def __init__(self, account_id: int) -> None:
        """Создать исключение о ненайденном аккаунте.

        Args:
            account_id: ID аккаунта в нашей БД.
        """
        super().__init__(
            f"Аккаунт с id={account_id} не найден в БД",
            retryable=False,
        )
        self.account_id = account_id


# =============================================================================
# GENERATION REQUEST EXCEPTIONS
# =============================================================================
# Ошибки, которые обнаруживаются ДО списания токенов и вызова провайдера.
# Терминальные: сообщаются пользователю как есть.
# =============================================================================


class GenerationRequestError(Exception):
    """Некорректный запрос на генерацию (HTTP 400).

    Например: нет ни текста, ни изображения; битый data URI.
    """

    def __init__(self, message: str) -> None:
        """Создать исключение о некорректном запросе.

        Args:
            message: Описание ошибки для пользователя.
        """
        super().__init__(message)
        self.message = message


class ConfigurationError(Exception):
    """Ошибка конфигурации сервера (HTTP 500).

    Возникает когда не настроен доступ к провайдеру (ключ, регион)
    или в каталоге модель с неизвестным форматом тела запроса.
    """

    def __init__(self, message: str) -> None:
        """Создать исключение ConfigurationError.

        Args:
            message: Описание ошибки.
        """
        super().__init__(message)
        self.message = message


class UnknownPayloadShapeError(ConfigurationError):
    """Для модели указан формат тела запроса, который сборщик не знает."""

    def __init__(self, model_key: str, payload_shape: str) -> None:
        """Создать исключение о неизвестном формате.

        Args:
            model_key: Ключ модели в каталоге.
            payload_shape: Значение формата из конфигурации.
        """
        super().__init__(
            f"Неизвестный формат тела запроса '{payload_shape}' у модели '{model_key}'"
        )
        self.model_key = model_key
        self.payload_shape = payload_shape


# =============================================================================
# PROVIDER EXCEPTIONS
# =============================================================================
# Ошибки вызова Bedrock.
# Ошибки отдельных стратегий поглощаются цепочкой fallback,
# наружу выходит только AllCandidatesFailedError.
# =============================================================================


class MalformedResponseError(Exception):
    """Провайдер вернул успешный статус, но тело не удалось разобрать.

    Считается неудачей конкретной стратегии вызова.
    """

    def __init__(self, message: str, *, model_key: str | None = None) -> None:
        """Создать исключение о некорректном ответе.

        Args:
            message: Описание проблемы.
            model_key: Ключ модели (опционально).
        """
        super().__init__(message)
        self.message = message
        self.model_key = model_key


class AllCandidatesFailedError(Exception):
    """Ни одна стратегия вызова не вернула успешный ответ (HTTP 502).

    Содержит полный журнал попыток в порядке их выполнения.

    Attributes:
        model_key: Ключ модели.
        attempts: Исходы всех попыток (в порядке вызова).
    """

    def __init__(
        self, model_key: str, attempts: Sequence["InvocationOutcome"]
    ) -> None:
        """Создать исключение о провале всех стратегий.

        Args:
            model_key: Ключ модели.
            attempts: Исходы всех попыток.
        """
        self.model_key = model_key
        self.attempts = list(attempts)
        self.message = f"All approaches failed for model '{model_key}'"
        super().__init__(self.message)

    @property
    def details(self) -> str:
        """Журнал попыток одной строкой: "<label>: <detail>; ..."."""
        return "; ".join(
            f"{outcome.candidate.label}: {outcome.detail}" for outcome in self.attempts
        )

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"{self.message}. {self.details}"


# =============================================================================
# TOKEN METER EXCEPTIONS
# =============================================================================
# Ошибки списания токенов.
# =============================================================================


class InsufficientBalanceError(Exception):
    """Недостаточно токенов для генерации (HTTP 402).

    Баланс при этом не изменяется.

    Attributes:
        account_id: ID аккаунта.
        category: Категория генерации.
        required: Требуемое количество токенов.
        available: Доступное количество токенов.
    """

    def __init__(
        self,
        account_id: int,
        category: str,
        required: int,
        available: int,
    ) -> None:
        """Создать исключение о недостаточном балансе.

        Args:
            account_id: ID аккаунта.
            category: Категория генерации.
            required: Требуемое количество токенов.
            available: Доступное количество токенов.
        """
        self.account_id = account_id
        self.category = category
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient tokens: required {required}, available {available}"
        )


class ConsumptionError(Exception):
    """Не удалось списать токены по технической причине (HTTP 503).

    Генерация в этом случае не выполняется.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Создать исключение ConsumptionError.

        Args:
            message: Описание ошибки.
            original_error: Оригинальное исключение (ошибка БД и т.п.).
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ChargeNotFoundError(Exception):
    """Списание с указанным ID не найдено у этого аккаунта."""

    def __init__(self, charge_id: int) -> None:
        """Создать исключение о ненайденном списании.

        Args:
            charge_id: ID списания (транзакции).
        """
        super().__init__(f"Charge {charge_id} not found")
        self.charge_id = charge_id


class ChargeAlreadyUsedError(Exception):
    """Списание уже использовано другой генерацией (или возвращено)."""

    def __init__(self, charge_id: int, status: str) -> None:
        """Создать исключение о повторном использовании списания.

        Args:
            charge_id: ID списания.
            status: Текущий статус списания.
        """
        super().__init__(f"Charge {charge_id} is already {status}")
        self.charge_id = charge_id
        self.status = status


class ChargeCategoryMismatchError(Exception):
    """Списание сделано за другую категорию генерации."""

    def __init__(self, charge_id: int, charged: str, requested: str) -> None:
        """Создать исключение о несовпадении категории.

        Args:
            charge_id: ID списания.
            charged: Категория, за которую списаны токены.
            requested: Категория текущего запроса.
        """
        super().__init__(
            f"Charge {charge_id} was made for '{charged}', request is '{requested}'"
        )
        self.charge_id = charge_id
        self.charged = charged
        self.requested = requested


class RequestIdConflictError(Exception):
    """requestId уже использован для списания за другую генерацию.

    Повтор с тем же requestId допустим только с теми же категорией
    и моделью, иначе клиент получил бы чужое списание.
    """

    def __init__(self, request_id: str, charge_id: int, used_for: str) -> None:
        """Создать исключение о конфликте requestId.

        Args:
            request_id: ID запроса клиента.
            charge_id: ID исходного списания.
            used_for: Категория и модель исходного списания.
        """
        super().__init__(
            f"Request id '{request_id}' was already used for {used_for} "
            f"(charge {charge_id})"
        )
        self.request_id = request_id
        self.charge_id = charge_id
        self.used_for = used_for


# =============================================================================
# IDENTITY EXCEPTIONS
# =============================================================================


class IdentityVerificationError(Exception):
    """Не удалось подтвердить личность (HTTP 401).

    Возникает при невалидном Google ID-токене или истёкшей сессии.
    """

    def __init__(self, message: str) -> None:
        """Создать исключение IdentityVerificationError.

        Args:
            message: Описание ошибки.
        """
        super().__init__(message)
        self.message = message
