"""Эндпоинты входа.

- POST /api/auth/google-login — вход по Google ID-токену, выдача токена сессии
- POST /api/auth/verify-token — проверить токен сессии, вернуть профиль
- POST /api/auth/logout — выход (токены не хранятся на сервере)
"""

from collections.abc import Callable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Body, Depends

from bongo.api.deps import get_login_service
from bongo.api.schemas import (
    GoogleLoginRequest,
    LoginResponse,
    ProfileResponse,
    UserOut,
    VerifyTokenRequest,
)
from bongo.identity.service import LoginService
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

THandler = TypeVar("THandler", bound=Callable[..., Any])


def typed_post(*args: Any, **kwargs: Any) -> Callable[[THandler], THandler]:
    """Типизированный wrapper для router.post."""
    return router.post(*args, **kwargs)


@typed_post("/google-login")
async def google_login(
    body: GoogleLoginRequest,
    login_service: Annotated[LoginService, Depends(get_login_service)],
) -> LoginResponse:
    """Войти через Google.

    При первом входе создаётся аккаунт и начисляется бонус.
    """
    result = await login_service.login(body.credential)
    return LoginResponse(user=UserOut.from_account(result.account), token=result.token)


@typed_post("/verify-token")
async def verify_token(
    body: VerifyTokenRequest,
    login_service: Annotated[LoginService, Depends(get_login_service)],
) -> ProfileResponse:
    """Проверить токен сессии (клиент вызывает при загрузке страницы)."""
    account = await login_service.resolve(body.token)
    return ProfileResponse(user=UserOut.from_account(account))


@typed_post("/logout")
async def logout(
    user_id: Annotated[str | None, Body(alias="userId", embed=True)] = None,
) -> dict[str, bool]:
    """Выйти.

    Токен сессии живёт на клиенте, поэтому сервер только фиксирует выход.
    """
    logger.info("Выход: user_id=%s", user_id)
    return {"success": True}
