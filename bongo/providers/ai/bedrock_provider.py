"""Исполнитель вызовов Amazon Bedrock (InvokeModel).

Bedrock принимает API-ключ в заголовке Authorization: Bearer <ключ>,
поэтому подпись запросов SigV4 не нужна — достаточно httpx.

Исполнитель получает ОДНО готовое тело запроса и список стратегий
(эндпоинтов) и пробует их строго по порядку:
- Не-2xx статус, сетевая ошибка или таймаут → стратегия провалена, идём дальше
- 2xx, но тело не разбирается → тоже провал стратегии
- Первый успех возвращается сразу, остальные стратегии не вызываются

Повторов одной стратегии и задержек между попытками нет.

Документация: https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_InvokeModel.html
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import httpx
from typing_extensions import override

from bongo.core.exceptions import (
    AllCandidatesFailedError,
    ConfigurationError,
    MalformedResponseError,
)
from bongo.providers.ai.base import BaseInvoker, EndpointCandidate, InvocationOutcome
from bongo.utils.logging import get_logger

if TYPE_CHECKING:
    from bongo.config.models import AWSSettings, BedrockSettings

logger = get_logger(__name__)

# Таймаут одной стратегии по умолчанию (в секундах)
DEFAULT_TIMEOUT_SECONDS = 60.0

# Сколько символов тела ошибки сохранять в журнале попыток
ERROR_BODY_LIMIT = 300


class BedrockInvoker(BaseInvoker):
    """Исполнитель вызовов Bedrock с перебором стратегий.

    Пример использования:
        invoker = BedrockInvoker(bearer_token="...")
        outcome, attempts = await invoker.invoke(
            "claude-opus-4",
            payload,
            resolver.resolve(descriptor),
            parse=lambda body: normalizer.normalize(descriptor, body),
        )
    """

    def __init__(
        self,
        bearer_token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Создать исполнитель.

        Args:
            bearer_token: API-ключ Bedrock.
            timeout: Таймаут одной стратегии в секундах.
            transport: Транспорт httpx (в тестах — httpx.MockTransport).
        """
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {bearer_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "bedrock"

    @override
    async def invoke(
        self,
        model_key: str,
        payload: dict[str, Any],
        candidates: Sequence[EndpointCandidate],
        parse: Callable[[Any], Any],
    ) -> tuple[InvocationOutcome, list[InvocationOutcome]]:
        attempts: list[InvocationOutcome] = []

        for candidate in candidates:
            outcome = await self._attempt(candidate, payload, parse)
            attempts.append(outcome)

            if outcome.success:
                logger.info(
                    "Bedrock %s: успех через '%s' (%.2fс, попытка %d/%d)",
                    model_key,
                    candidate.label,
                    outcome.elapsed,
                    candidate.order,
                    len(candidates),
                )
                return outcome, attempts

            logger.warning(
                "Bedrock %s: стратегия '%s' не сработала: %s",
                model_key,
                candidate.label,
                outcome.detail,
            )

        logger.error(
            "Bedrock %s: все стратегии (%d) не сработали", model_key, len(attempts)
        )
        raise AllCandidatesFailedError(model_key, attempts)

    async def _attempt(
        self,
        candidate: EndpointCandidate,
        payload: dict[str, Any],
        parse: Callable[[Any], Any],
    ) -> InvocationOutcome:
        """Выполнить одну попытку вызова.

        Ошибки попытки не выбрасываются, а записываются в InvocationOutcome.
        """
        started = time.perf_counter()

        def failed(detail: str, status_code: int | None = None) -> InvocationOutcome:
            return InvocationOutcome(
                candidate=candidate,
                success=False,
                status_code=status_code,
                detail=detail,
                elapsed=time.perf_counter() - started,
            )

        # Бюджет на всю попытку, а не на отдельные шаги connect/read
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._client.post(candidate.url, json=payload)
        except (httpx.TimeoutException, TimeoutError):
            return failed(f"Timeout after {self._timeout:g}s")
        except httpx.HTTPError as e:
            return failed(f"{type(e).__name__}: {e}")

        if not response.is_success:
            body = response.text[:ERROR_BODY_LIMIT]
            return failed(f"HTTP {response.status_code}: {body}", response.status_code)

        try:
            result = parse(response.json())
        except ValueError:
            return failed("Malformed response: body is not JSON", response.status_code)
        except MalformedResponseError as e:
            return failed(f"Malformed response: {e.message}", response.status_code)

        return InvocationOutcome(
            candidate=candidate,
            success=True,
            status_code=response.status_code,
            result=result,
            elapsed=time.perf_counter() - started,
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


# ==============================================================================
# ФАБРИКА
# ==============================================================================


def create_bedrock_invoker(
    aws: AWSSettings,
    bedrock: BedrockSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BedrockInvoker:
    """Создать исполнитель из настроек.

    Args:
        aws: Ключ и регион Bedrock.
        bedrock: Параметры HTTP-вызовов.
        transport: Транспорт httpx (опционально, для тестов).

    Returns:
        Готовый исполнитель.

    Raises:
        ConfigurationError: Не задан ключ или регион.
    """
    if aws.bearer_token is None or not aws.region:
        raise ConfigurationError("AWS Bearer Token not configured")

    return BedrockInvoker(
        bearer_token=aws.bearer_token.get_secret_value(),
        timeout=bedrock.candidate_timeout,
        transport=transport,
    )
