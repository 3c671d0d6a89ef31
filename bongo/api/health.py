"""Health check эндпоинт.

Содержит endpoint для проверки работоспособности сервиса:
- GET /health — health check для мониторинга и проверок liveness
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from bongo.api.deps import get_ai_service
from bongo.services.ai_service import AIService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    ai_service: Annotated[AIService, Depends(get_ai_service)],
) -> dict[str, str]:
    """Проверка состояния сервиса.

    Сервис считается живым и без настроенного Bedrock: в этом случае
    каталог работает, а генерации отклоняются.

    Returns:
        Словарь со статусом "ok" и состоянием провайдера
    """
    return {
        "status": "ok",
        "bedrock": "configured" if ai_service.is_configured else "not_configured",
    }
