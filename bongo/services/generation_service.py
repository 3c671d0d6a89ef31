"""Оркестрация запроса на генерацию с учётом токенов.

Порядок обработки одного запроса:
1. Проверка запроса (нужен текст или изображение)
2. Проверка конфигурации провайдера (ДО списания токенов)
3. Выбор модели
4. Списание токенов: либо привязка ранее сделанного списания (chargeId),
   либо списание на месте
5. Вызов провайдера через цепочку стратегий
6. При провале всех стратегий — возврат токенов, если так настроено
   (billing.failure_policy = refund_on_failure)

Генерация без успешного списания невозможна: шаг 5 выполняется только
после шага 4.
"""

from dataclasses import dataclass

from bongo.config.yaml_config import FailurePolicy
from bongo.core.exceptions import AllCandidatesFailedError, GenerationRequestError
from bongo.providers.ai.base import (
    GenerationCategory,
    GenerationRequest,
    ModelDescriptor,
    NormalizedResult,
)
from bongo.services.ai_service import AIService
from bongo.services.token_meter import TokenMeter
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

CHAT_ENDPOINT = "/api/chat"


@dataclass
class ChatResult:
    """Результат генерации для ответа клиенту.

    Attributes:
        model: Модель, выполнившая генерацию.
        result: Нормализованный ответ.
        charge_id: ID списания, которым оплачена генерация.
        remaining_tokens: Баланс после списания.
        total_api_calls: Счётчик вызовов после списания.
    """

    model: ModelDescriptor
    result: NormalizedResult
    charge_id: int
    remaining_tokens: int
    total_api_calls: int

    @property
    def category(self) -> GenerationCategory:
        """Категория, за которую списаны токены."""
        return self.model.category


class GenerationService:
    """Сервис запросов на генерацию.

    Пример использования:
        service = GenerationService(ai_service, meter)
        result = await service.execute(account_id, GenerationRequest(prompt="Hi"))
    """

    def __init__(self, ai_service: AIService, meter: TokenMeter) -> None:
        self._ai = ai_service
        self._meter = meter

    async def execute(
        self,
        account_id: int,
        request: GenerationRequest,
        charge_id: int | None = None,
    ) -> ChatResult:
        """Выполнить генерацию за токены аккаунта.

        Args:
            account_id: ID аккаунта.
            request: Запрос пользователя.
            charge_id: ID списания из /api/user/consume-tokens.
                Если не передан — токены списываются здесь.

        Returns:
            ChatResult.

        Raises:
            GenerationRequestError: Нет ни текста, ни изображения.
            ConfigurationError: Провайдер не настроен.
            InsufficientBalanceError: Недостаточно токенов.
            ConsumptionError: Не удалось списать токены.
            ChargeNotFoundError: Списание не найдено.
            ChargeAlreadyUsedError: Списание уже использовано.
            ChargeCategoryMismatchError: Списание сделано за другую категорию.
            AllCandidatesFailedError: Ни одна стратегия вызова не сработала.
        """
        if not request.prompt and not request.has_media:
            raise GenerationRequestError("Message or image data is required")

        self._ai.ensure_configured()

        model = self._ai.select_model(request.model_key, request.category)

        if charge_id is not None:
            await self._meter.claim(account_id, charge_id, model.category)
            remaining_tokens, total_api_calls = await self._meter.get_balance(account_id)
        else:
            charge = await self._meter.consume(
                account_id,
                model.category,
                model.key,
                endpoint=CHAT_ENDPOINT,
                settle=True,
            )
            charge_id = charge.charge_id
            remaining_tokens = charge.remaining_tokens
            total_api_calls = charge.total_api_calls

        try:
            output = await self._ai.generate(request, model=model)
        except AllCandidatesFailedError as e:
            logger.warning(
                "Генерация не удалась: account_id=%d, model=%s, charge_id=%d",
                account_id,
                model.key,
                charge_id,
            )
            if self._meter.config.failure_policy == FailurePolicy.REFUND_ON_FAILURE:
                try:
                    await self._meter.refund(account_id, charge_id, reason=e.message)
                except Exception:
                    # Наружу уходит исходная ошибка с журналом попыток
                    logger.exception(
                        "Не удалось вернуть токены: account_id=%d, charge_id=%d",
                        account_id,
                        charge_id,
                    )
            raise

        logger.info(
            "Генерация выполнена: account_id=%d, model=%s, approach=%s",
            account_id,
            model.key,
            output.result.approach,
        )
        return ChatResult(
            model=output.model,
            result=output.result,
            charge_id=charge_id,
            remaining_tokens=remaining_tokens,
            total_api_calls=total_api_calls,
        )
