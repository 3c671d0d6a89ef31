"""Тесты для исполнителя вызовов Bedrock (BedrockInvoker).

Bedrock заменяется httpx.MockTransport: обработчик получает запрос
и возвращает ответ в зависимости от URL стратегии.
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from bongo.config.models import AWSSettings, BedrockSettings
from bongo.core.exceptions import AllCandidatesFailedError, ConfigurationError, MalformedResponseError
from bongo.providers.ai.base import EndpointCandidate
from bongo.providers.ai.bedrock_provider import BedrockInvoker, create_bedrock_invoker

# =============================================================================
# ФИКСТУРЫ
# =============================================================================

CANDIDATES = (
    EndpointCandidate(url="https://a.example/model/m/invoke", label="A", order=1),
    EndpointCandidate(url="https://b.example/model/m/invoke", label="B", order=2),
    EndpointCandidate(url="https://c.example/model/m/invoke", label="C", order=3),
)

PAYLOAD = {"messages": [{"role": "user", "content": "Hello"}]}


def _identity(body: Any) -> Any:
    return body


def _invoker(
    handler: Callable[[httpx.Request], httpx.Response], calls: list[httpx.Request]
) -> BedrockInvoker:
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return BedrockInvoker("test-key", timeout=5.0, transport=httpx.MockTransport(recording))


# =============================================================================
# ТЕСТЫ
# =============================================================================


class TestInvokeOrder:
    """Порядок перебора стратегий."""

    @pytest.mark.asyncio
    async def test_first_success_stops_chain(self) -> None:
        """Тест: A падает, B отвечает → C не вызывается."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                return httpx.Response(403, text="AccessDenied")
            return httpx.Response(200, json={"ok": request.url.host})

        invoker = _invoker(handler, calls)
        outcome, attempts = await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=_identity)
        await invoker.close()

        assert outcome.success
        assert outcome.candidate.label == "B"
        assert outcome.result == {"ok": "b.example"}
        assert [a.candidate.label for a in attempts] == ["A", "B"]
        assert attempts[0].status_code == 403
        assert [c.url.host for c in calls] == ["a.example", "b.example"]

    @pytest.mark.asyncio
    async def test_same_payload_and_auth_header(self) -> None:
        """Тест: все попытки отправляют одно и то же тело с Bearer-ключом."""
        calls: list[httpx.Request] = []
        invoker = _invoker(lambda _: httpx.Response(500, text="boom"), calls)

        with pytest.raises(AllCandidatesFailedError):
            await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=_identity)
        await invoker.close()

        assert len(calls) == 3
        assert all(json.loads(c.content) == PAYLOAD for c in calls)
        assert all(c.headers["Authorization"] == "Bearer test-key" for c in calls)
        assert all(c.method == "POST" for c in calls)

    @pytest.mark.asyncio
    async def test_all_failed_aggregates_in_order(self) -> None:
        """Тест: провал всех стратегий → ошибка с журналом в порядке попыток."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                raise httpx.ConnectError("connection refused", request=request)
            if request.url.host == "b.example":
                return httpx.Response(404, text="model not found")
            return httpx.Response(200, text="<html>not json</html>")

        invoker = _invoker(handler, calls)
        with pytest.raises(AllCandidatesFailedError) as exc_info:
            await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=_identity)
        await invoker.close()

        error = exc_info.value
        assert error.model_key == "m"
        assert [a.candidate.label for a in error.attempts] == ["A", "B", "C"]
        assert not any(a.success for a in error.attempts)
        assert error.attempts[0].detail == "ConnectError: connection refused"
        assert error.attempts[1].detail == "HTTP 404: model not found"
        assert error.attempts[2].detail == "Malformed response: body is not JSON"
        assert error.details.index("A:") < error.details.index("B:") < error.details.index("C:")
        assert "All approaches failed" in str(error)


class TestAttemptFailures:
    """Причины провала одной стратегии."""

    @pytest.mark.asyncio
    async def test_timeout_is_candidate_failure(self) -> None:
        """Тест: таймаут стратегии → переход к следующей."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={})

        invoker = _invoker(handler, calls)
        outcome, attempts = await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=_identity)
        await invoker.close()

        assert outcome.candidate.label == "B"
        assert attempts[0].detail == "Timeout after 5s"
        assert attempts[0].status_code is None

    @pytest.mark.asyncio
    async def test_slow_body_limited_by_attempt_budget(self) -> None:
        """Тест: ответ, который тянется дольше бюджета попытки, считается таймаутом."""

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                await asyncio.sleep(5)
            return httpx.Response(200, json={})

        invoker = BedrockInvoker("test-key", timeout=0.05, transport=httpx.MockTransport(handler))
        outcome, attempts = await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=_identity)
        await invoker.close()

        assert outcome.candidate.label == "B"
        assert attempts[0].detail == "Timeout after 0.05s"
        assert attempts[0].elapsed < 1

    @pytest.mark.asyncio
    async def test_parse_error_is_candidate_failure(self) -> None:
        """Тест: успешный статус, но тело не разбирается → стратегия провалена."""
        calls: list[httpx.Request] = []

        def parse(body: Any) -> Any:
            if "content" not in body:
                raise MalformedResponseError("response has no text content block")
            return body

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                return httpx.Response(200, json={"unexpected": True})
            return httpx.Response(200, json={"content": []})

        invoker = _invoker(handler, calls)
        outcome, attempts = await invoker.invoke("m", PAYLOAD, CANDIDATES, parse=parse)
        await invoker.close()

        assert outcome.candidate.label == "B"
        assert attempts[0].detail == "Malformed response: response has no text content block"

    @pytest.mark.asyncio
    async def test_error_body_truncated(self) -> None:
        """Тест: длинное тело ошибки обрезается в журнале."""
        calls: list[httpx.Request] = []
        invoker = _invoker(lambda _: httpx.Response(400, text="x" * 1000), calls)

        with pytest.raises(AllCandidatesFailedError) as exc_info:
            await invoker.invoke("m", PAYLOAD, CANDIDATES[:1], parse=_identity)
        await invoker.close()

        assert exc_info.value.attempts[0].detail == "HTTP 400: " + "x" * 300


class TestFactory:
    """Создание исполнителя из настроек."""

    def test_missing_token(self) -> None:
        """Тест: без ключа Bedrock → ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            create_bedrock_invoker(AWSSettings(bearer_token=None), BedrockSettings())

        assert exc_info.value.message == "AWS Bearer Token not configured"

    @pytest.mark.asyncio
    async def test_created_with_timeout(self) -> None:
        """Тест: таймаут стратегии берётся из настроек."""
        invoker = create_bedrock_invoker(
            AWSSettings(bearer_token="key"), BedrockSettings(candidate_timeout=12.5)
        )

        assert invoker.provider_name == "bedrock"
        await invoker.close()
