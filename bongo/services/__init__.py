"""Сервисы приложения.

Этот пакет содержит бизнес-логику приложения.

Сервисы:
- AIService — конвейер генерации: каталог, сборка тела, стратегии вызова, fallback.
- TokenMeter — проверка, списание, возврат и начисление токенов.
- GenerationService — запрос на генерацию целиком (списание → вызов → возврат).
"""

from bongo.core.exceptions import InsufficientBalanceError
from bongo.services.ai_service import AIService, GenerationOutput, create_ai_service
from bongo.services.generation_service import ChatResult, GenerationService
from bongo.services.token_meter import (
    BalanceChange,
    BalanceCheck,
    ChargeResult,
    TokenMeter,
    create_token_meter,
)

__all__ = [
    "AIService",
    "BalanceChange",
    "BalanceCheck",
    "ChargeResult",
    "ChatResult",
    "GenerationOutput",
    "GenerationService",
    "InsufficientBalanceError",
    "TokenMeter",
    "create_ai_service",
    "create_token_meter",
]
