"""Сервис для оркестрации генераций через Bedrock.

Связывает части конвейера: каталог → сборщик тела → стратегии вызова →
исполнитель → нормализатор. Токены здесь НЕ списываются — это делает
GenerationService до вызова generate().
"""

from dataclasses import dataclass, replace

import httpx

from bongo.config.models import AWSSettings, BedrockSettings
from bongo.config.yaml_config import YamlConfig
from bongo.core.exceptions import ConfigurationError
from bongo.providers.ai.base import (
    BaseInvoker,
    GenerationCategory,
    GenerationRequest,
    InvocationOutcome,
    ModelDescriptor,
    NormalizedResult,
)
from bongo.providers.ai.bedrock_provider import create_bedrock_invoker
from bongo.providers.ai.endpoints import EndpointResolver
from bongo.providers.ai.normalizer import ResponseNormalizer
from bongo.providers.ai.payloads import PayloadBuilder
from bongo.providers.ai.registry import ModelRegistry, create_model_registry
from bongo.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GenerationOutput:
    """Результат конвейера.

    Attributes:
        model: Модель, которая выполнила генерацию.
        result: Нормализованный ответ (approach заполнен).
        attempts: Журнал попыток (включая успешную).
    """

    model: ModelDescriptor
    result: NormalizedResult
    attempts: list[InvocationOutcome]


class AIService:
    """Центральный сервис генераций.

    Если ключ Bedrock не настроен, invoker = None: каталог моделей
    при этом работает, а generate() выбрасывает ConfigurationError.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        builder: PayloadBuilder,
        resolver: EndpointResolver | None,
        invoker: BaseInvoker | None,
        normalizer: ResponseNormalizer | None = None,
    ) -> None:
        self._registry = registry
        self._builder = builder
        self._resolver = resolver
        self._invoker = invoker
        self._normalizer = normalizer or ResponseNormalizer()

        logger.info(
            "AIService: Bedrock=%s, моделей=%d, по умолчанию=%s",
            "да" if invoker is not None else "нет",
            len(registry),
            registry.default.key,
        )

    @property
    def registry(self) -> ModelRegistry:
        """Каталог моделей."""
        return self._registry

    @property
    def is_configured(self) -> bool:
        """Настроен ли доступ к провайдеру."""
        return self._invoker is not None and self._resolver is not None

    def ensure_configured(self) -> None:
        """Проверить доступ к провайдеру.

        Raises:
            ConfigurationError: Не задан ключ или регион Bedrock.
        """
        if not self.is_configured:
            raise ConfigurationError("AWS Bearer Token not configured")

    def select_model(
        self, model_key: str | None, category: GenerationCategory
    ) -> ModelDescriptor:
        """Выбрать модель для запроса.

        Известный ключ → эта модель. Иначе — первая модель запрошенной
        категории, а если таких нет — модель по умолчанию из каталога.
        """
        if model_key and self._registry.contains(model_key):
            return self._registry.lookup(model_key)

        by_category = self._registry.list_by_category(category)
        if by_category:
            if model_key:
                logger.warning(
                    "Неизвестная модель '%s', используется %s",
                    model_key,
                    by_category[0].key,
                )
            return by_category[0]
        return self._registry.lookup(model_key)

    async def generate(
        self, request: GenerationRequest, model: ModelDescriptor | None = None
    ) -> GenerationOutput:
        """Выполнить генерацию.

        Args:
            request: Запрос пользователя.
            model: Уже выбранная модель (иначе выбирается по request).

        Returns:
            GenerationOutput с результатом и журналом попыток.

        Raises:
            ConfigurationError: Провайдер не настроен или неизвестный формат тела.
            AllCandidatesFailedError: Ни одна стратегия не сработала.
        """
        self.ensure_configured()
        assert self._invoker is not None
        assert self._resolver is not None

        descriptor = model or self.select_model(request.model_key, request.category)
        payload = self._builder.build(descriptor, request)
        candidates = self._resolver.resolve(descriptor)

        logger.debug(
            "Генерация: model=%s, shape=%s, стратегий=%d",
            descriptor.key,
            descriptor.payload_shape.value,
            len(candidates),
        )

        outcome, attempts = await self._invoker.invoke(
            descriptor.key,
            payload,
            candidates,
            parse=lambda body: self._normalizer.normalize(
                descriptor, body, request.prompt
            ),
        )

        result = replace(outcome.result, approach=outcome.candidate.label)
        return GenerationOutput(model=descriptor, result=result, attempts=attempts)

    async def close(self) -> None:
        """Закрыть HTTP-клиент исполнителя."""
        if self._invoker is not None:
            await self._invoker.close()


def create_ai_service(
    aws: AWSSettings | None = None,
    bedrock: BedrockSettings | None = None,
    config: YamlConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AIService:
    """Создать AI-сервис.

    Без аргументов берёт настройки из окружения и config.yaml.

    Args:
        aws: Ключ и регион Bedrock.
        bedrock: Параметры HTTP-вызовов.
        config: YAML-конфигурация.
        transport: Транспорт httpx (опционально, для тестов).

    Returns:
        Готовый сервис (без исполнителя, если Bedrock не настроен).
    """
    if aws is None or bedrock is None:
        from bongo.config.settings import settings

        aws = aws or settings.aws
        bedrock = bedrock or settings.providers.bedrock
    if config is None:
        from bongo.config.yaml_config import yaml_config

        config = yaml_config

    invoker: BaseInvoker | None = None
    resolver: EndpointResolver | None = None
    if aws.is_configured:
        invoker = create_bedrock_invoker(aws, bedrock, transport=transport)
        resolver = EndpointResolver(aws.region or "", config.routing)
    else:
        logger.warning(
            "Bedrock не настроен (AWS__BEARER_TOKEN / AWS__REGION): "
            "генерации будут отклоняться"
        )

    return AIService(
        registry=create_model_registry(config),
        builder=PayloadBuilder(config.generation),
        resolver=resolver,
        invoker=invoker,
    )
