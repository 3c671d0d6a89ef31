"""Эндпоинты токенов и профиля пользователя.

- POST /api/user/check-tokens — хватает ли токенов (без резервирования)
- POST /api/user/consume-tokens — списать токены, получить chargeId
- GET /api/user/profile — профиль и баланс

Все эндпоинты требуют Authorization: Bearer <токен сессии>.
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bongo.api.deps import get_ai_service, get_current_account, get_token_meter
from bongo.api.schemas import (
    ConsumeRequest,
    ConsumeResponse,
    ProfileResponse,
    TokenCheckRequest,
    TokenCheckResponse,
    UserOut,
)
from bongo.core.exceptions import (
    ConsumptionError,
    InsufficientBalanceError,
    RequestIdConflictError,
)
from bongo.db.models.account import Account
from bongo.services.ai_service import AIService
from bongo.services.token_meter import TokenMeter
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


def typed_get(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.get."""
    return router.get(*args, **kwargs)


@typed_post("/check-tokens")
async def check_tokens(
    body: TokenCheckRequest,
    account: Annotated[Account, Depends(get_current_account)],
    meter: Annotated[TokenMeter, Depends(get_token_meter)],
) -> TokenCheckResponse:
    """Проверить баланс перед генерацией.

    Результат не резервирует токены: списание проверяет баланс заново.
    """
    check = await meter.check(account.id, body.category, body.model)
    return TokenCheckResponse(
        has_enough_tokens=check.has_enough,
        required=check.required,
        available=check.available,
    )


@typed_post("/consume-tokens", response_model=ConsumeResponse)
async def consume_tokens(
    body: ConsumeRequest,
    account: Annotated[Account, Depends(get_current_account)],
    meter: Annotated[TokenMeter, Depends(get_token_meter)],
    ai_service: Annotated[AIService, Depends(get_ai_service)],
) -> ConsumeResponse | JSONResponse:
    """Списать токены за предстоящую генерацию.

    При отказе возвращается {success: false, message} со статусом
    402 (нет токенов), 409 (requestId занят другой генерацией)
    или 503 (ошибка списания).
    """
    # Без настроенного провайдера токены не списываются
    ai_service.ensure_configured()

    try:
        charge = await meter.consume(
            account.id,
            body.category,
            body.model,
            endpoint=body.endpoint,
            request_id=body.request_id,
        )
    except InsufficientBalanceError as e:
        return _consume_failed(402, str(e))
    except RequestIdConflictError as e:
        return _consume_failed(409, str(e))
    except ConsumptionError as e:
        return _consume_failed(503, e.message)

    return ConsumeResponse(
        success=True,
        remaining_tokens=charge.remaining_tokens,
        total_api_calls=charge.total_api_calls,
        charge_id=charge.charge_id,
    )


def _consume_failed(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


@typed_get("/profile")
async def profile(
    account: Annotated[Account, Depends(get_current_account)],
) -> ProfileResponse:
    """Профиль и текущий баланс."""
    return ProfileResponse(user=UserOut.from_account(account))
