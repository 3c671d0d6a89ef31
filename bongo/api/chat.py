"""Эндпоинт генерации.

- POST /api/chat — текст, изображение или видео за токены аккаунта

Токены списываются до вызова провайдера: либо клиент заранее вызвал
/api/user/consume-tokens и передал chargeId, либо списание делается здесь.
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends

from bongo.api.deps import get_current_account, get_generation_service
from bongo.api.schemas import ChatRequest, ChatResponse
from bongo.db.models.account import Account
from bongo.providers.ai.base import GenerationRequest, ReferenceMedia
from bongo.services.generation_service import GenerationService

router = APIRouter(prefix="/api", tags=["chat"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_post("/chat")
async def chat(
    body: ChatRequest,
    account: Annotated[Account, Depends(get_current_account)],
    service: Annotated[GenerationService, Depends(get_generation_service)],
) -> ChatResponse:
    """Выполнить генерацию.

    Args:
        body: Запрос (message и/или imageData, модель, категория).
        account: Владелец токена сессии.
        service: Сервис генераций.

    Returns:
        ChatResponse с результатом и новым балансом.
    """
    request = GenerationRequest(
        prompt=body.message or "",
        media=ReferenceMedia.from_data_uri(body.image_data) if body.image_data else None,
        model_key=body.model_key,
        max_tokens=body.max_tokens,
        category=body.category,
    )
    result = await service.execute(account.id, request, charge_id=body.charge_id)

    return ChatResponse(
        response=result.result.text,
        model=result.model.display_name,
        tokens=result.result.usage,
        approach=result.result.approach,
        image_url=result.result.media_url,
        category=result.category,
        remaining_tokens=result.remaining_tokens,
        total_api_calls=result.total_api_calls,
        charge_id=result.charge_id,
    )
