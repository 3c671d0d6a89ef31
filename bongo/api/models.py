"""Каталог моделей.

- GET /api/models — все модели или модели одной категории (?category=image)
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends

from bongo.api.deps import get_ai_service
from bongo.api.schemas import ModelOut, ModelsResponse
from bongo.providers.ai.base import GenerationCategory
from bongo.services.ai_service import AIService

router = APIRouter(prefix="/api", tags=["models"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_get(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.get."""
    return router.get(*args, **kwargs)


@typed_get("/models")
async def list_models(
    ai_service: Annotated[AIService, Depends(get_ai_service)],
    category: GenerationCategory | None = None,
) -> ModelsResponse:
    """Список моделей в порядке каталога."""
    registry = ai_service.registry
    descriptors = (
        registry.list_by_category(category) if category is not None else registry.all()
    )
    return ModelsResponse(
        models=[ModelOut.from_descriptor(d) for d in descriptors],
        categories=registry.categories(),
        default_model=registry.default.key,
    )
