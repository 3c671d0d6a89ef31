"""Тесты для резолвера стратегий вызова (EndpointResolver)."""

from dataclasses import replace

from bongo.config.yaml_config import RoutingConfig
from bongo.providers.ai.base import ModelDescriptor, RouteOverride
from bongo.providers.ai.endpoints import EndpointResolver, invoke_url
from bongo.providers.ai.registry import ModelRegistry


def test_invoke_url() -> None:
    """Тест: формат URL InvokeModel."""
    assert invoke_url("eu-west-1", "amazon.nova-canvas-v1:0") == (
        "https://bedrock-runtime.eu-west-1.amazonaws.com/model/amazon.nova-canvas-v1:0/invoke"
    )


def test_fixed_order(model_registry: ModelRegistry) -> None:
    """Тест: порядок стратегий — прямой ID, профиль, запасной регион, без версии."""
    resolver = EndpointResolver("eu-central-1")
    opus = model_registry.lookup("claude-opus-4")

    candidates = resolver.resolve(opus)

    assert [c.label for c in candidates] == [
        "Direct model ID",
        "Cross-region inference profile (us prefix)",
        "Alternate region (us-west-2)",
        "Model ID without version",
    ]
    assert [c.url for c in candidates] == [
        invoke_url("eu-central-1", "anthropic.claude-opus-4-20250514-v1:0"),
        invoke_url("us-east-1", "us.anthropic.claude-opus-4-20250514-v1:0"),
        invoke_url("us-west-2", "anthropic.claude-opus-4-20250514-v1:0"),
        invoke_url("eu-central-1", "anthropic.claude-opus-4-20250514-v1"),
    ]
    assert [c.order for c in candidates] == [1, 2, 3, 4]


def test_route_overrides_after_cross_region(model_registry: ModelRegistry) -> None:
    """Тест: маршруты модели идут после кросс-регионального профиля."""
    resolver = EndpointResolver("us-east-1")
    descriptor = replace(
        model_registry.lookup("claude-3-7-sonnet"),
        route_overrides=(
            RouteOverride(model_id="us.anthropic.claude-3-5-sonnet-20241022-v2:0", label="Fallback"),
            RouteOverride(model_id="anthropic.claude-3-7-sonnet-20250219-v1:0", label="EU", region="eu-west-3"),
        ),
    )

    labels = [c.label for c in resolver.resolve(descriptor)]

    assert labels[1:4] == ["Cross-region inference profile (us prefix)", "Fallback", "EU"]


def test_duplicate_urls_dropped(model_registry: ModelRegistry) -> None:
    """Тест: стратегия с уже встречавшимся URL не повторяется.

    Домашний регион us-west-2 совпадает с запасным — прямой ID
    в запасном регионе уже есть в списке.
    """
    resolver = EndpointResolver("us-west-2")

    candidates = resolver.resolve(model_registry.lookup("nova-canvas"))

    urls = [c.url for c in candidates]
    assert len(urls) == len(set(urls))
    assert "Alternate region (us-west-2)" not in [c.label for c in candidates]
    assert [c.order for c in candidates] == list(range(1, len(candidates) + 1))


def test_profile_prefix_not_doubled() -> None:
    """Тест: ID, уже начинающийся с префикса профиля, не получает префикс повторно."""
    descriptor = ModelDescriptor(
        key="profiled",
        provider_id="us.meta.llama3-v1:0",
        display_name="Profiled",
        category="text",  # type: ignore[arg-type]
        max_output_tokens=100,
        payload_shape="text",  # type: ignore[arg-type]
    )
    resolver = EndpointResolver("us-west-2")

    urls = [c.url for c in resolver.resolve(descriptor)]

    assert invoke_url("us-east-1", "us.meta.llama3-v1:0") in urls
    assert invoke_url("us-east-1", "us.us.meta.llama3-v1:0") not in urls


def test_routing_from_config(model_registry: ModelRegistry) -> None:
    """Тест: регионы и префикс берутся из секции routing."""
    resolver = EndpointResolver(
        "eu-central-1",
        RoutingConfig(cross_region="eu-west-1", cross_region_prefix="eu", alternate_region="eu-north-1"),
    )

    candidates = resolver.resolve(model_registry.lookup("nova-reel"))

    assert candidates[1].url == invoke_url("eu-west-1", "eu.amazon.nova-reel-v1:0")
    assert candidates[1].label == "Cross-region inference profile (eu prefix)"
    assert candidates[2].label == "Alternate region (eu-north-1)"


def test_resolve_is_cached(model_registry: ModelRegistry) -> None:
    """Тест: повторный resolve возвращает тот же список."""
    resolver = EndpointResolver("us-east-1")
    descriptor = model_registry.lookup("claude-sonnet-4")

    assert resolver.resolve(descriptor) is resolver.resolve(descriptor)
