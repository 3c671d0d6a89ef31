"""Конвейер генерации через Amazon Bedrock.

Части конвейера:
- registry.py — каталог моделей (ModelRegistry)
- payloads.py — сборка тела запроса (PayloadBuilder)
- endpoints.py — упорядоченные стратегии вызова (EndpointResolver)
- bedrock_provider.py — исполнитель с перебором стратегий (BedrockInvoker)
- normalizer.py — единый вид ответа (ResponseNormalizer)

Здесь экспортируются только базовые типы: config.yaml валидируется
через них, а модули конвейера сами зависят от config.yaml.
"""

from bongo.providers.ai.base import (
    BaseInvoker,
    EndpointCandidate,
    GenerationCategory,
    GenerationRequest,
    InvocationOutcome,
    ModelDescriptor,
    NormalizedResult,
    PayloadShape,
    ReferenceMedia,
    RouteOverride,
)

__all__ = [
    "BaseInvoker",
    "EndpointCandidate",
    "GenerationCategory",
    "GenerationRequest",
    "InvocationOutcome",
    "ModelDescriptor",
    "NormalizedResult",
    "PayloadShape",
    "ReferenceMedia",
    "RouteOverride",
]
