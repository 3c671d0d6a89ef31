"""Преобразование исключений приложения в HTTP-ответы.

Все ошибки отдаются в едином формате:
    {"error": "<сообщение>", "details": "<подробности>"}

Коды ответов:
- GenerationRequestError      → 400
- IdentityVerificationError   → 401
- InsufficientBalanceError    → 402
- AccountNotFoundError        → 404
- ChargeNotFoundError         → 404
- ChargeAlreadyUsedError      → 409
- ChargeCategoryMismatchError → 409
- RequestIdConflictError      → 409
- ConfigurationError          → 500
- AllCandidatesFailedError    → 502 (details — журнал всех попыток)
- ConsumptionError            → 503
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bongo.core.exceptions import (
    AccountNotFoundError,
    AllCandidatesFailedError,
    ChargeAlreadyUsedError,
    ChargeCategoryMismatchError,
    ChargeNotFoundError,
    ConfigurationError,
    ConsumptionError,
    GenerationRequestError,
    IdentityVerificationError,
    InsufficientBalanceError,
    RequestIdConflictError,
)
from bongo.utils.logging import get_logger

logger = get_logger(__name__)


def error_response(
    status_code: int, error: str, details: str | None = None, **extra: Any
) -> JSONResponse:
    """Собрать JSON-ответ с ошибкой."""
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def _request_error(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, GenerationRequestError)
    return error_response(400, exc.message)


async def _identity_error(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, IdentityVerificationError)
    return error_response(401, exc.message)


async def _insufficient_balance(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, InsufficientBalanceError)
    return error_response(
        402,
        "Insufficient tokens",
        str(exc),
        required=exc.required,
        available=exc.available,
    )


async def _not_found(_: Request, exc: Exception) -> JSONResponse:
    return error_response(404, "Not found", str(exc))


async def _charge_conflict(_: Request, exc: Exception) -> JSONResponse:
    return error_response(409, "Charge cannot be used", str(exc))


async def _request_id_conflict(_: Request, exc: Exception) -> JSONResponse:
    return error_response(409, "Request id already used", str(exc))


async def _configuration_error(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ConfigurationError)
    logger.error("Ошибка конфигурации: %s", exc.message)
    return error_response(500, exc.message)


async def _all_candidates_failed(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AllCandidatesFailedError)
    logger.error("%s", exc)
    return error_response(502, "Failed to process request", f"{exc.message}. {exc.details}")


async def _consumption_error(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ConsumptionError)
    return error_response(503, "Failed to consume tokens", exc.message)


def install_exception_handlers(app: FastAPI) -> None:
    """Зарегистрировать обработчики исключений приложения."""
    app.add_exception_handler(GenerationRequestError, _request_error)
    app.add_exception_handler(IdentityVerificationError, _identity_error)
    app.add_exception_handler(InsufficientBalanceError, _insufficient_balance)
    app.add_exception_handler(AccountNotFoundError, _not_found)
    app.add_exception_handler(ChargeNotFoundError, _not_found)
    app.add_exception_handler(ChargeAlreadyUsedError, _charge_conflict)
    app.add_exception_handler(ChargeCategoryMismatchError, _charge_conflict)
    app.add_exception_handler(RequestIdConflictError, _request_id_conflict)
    app.add_exception_handler(ConfigurationError, _configuration_error)
    app.add_exception_handler(AllCandidatesFailedError, _all_candidates_failed)
    app.add_exception_handler(ConsumptionError, _consumption_error)
