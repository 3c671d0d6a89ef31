"""Стратегии вызова Bedrock (упорядоченный список эндпоинтов).

Одна и та же модель может быть доступна в аккаунте по-разному:
напрямую в домашнем регионе, через cross-region inference profile,
в другом регионе или только без суффикса версии. Резолвер строит
список кандидатов в фиксированном порядке:

1. Прямой ID в домашнем регионе
2. Inference profile (us.<id>) в регионе cross_region
3. Маршруты модели из route_overrides (в порядке конфигурации)
4. Прямой ID в запасном регионе
5. ID без суффикса версии в домашнем регионе

Кандидаты с уже встречавшимся URL отбрасываются (порядок сохраняется).
"""

from bongo.config.yaml_config import RoutingConfig
from bongo.providers.ai.base import EndpointCandidate, ModelDescriptor
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

LABEL_DIRECT = "Direct model ID"
LABEL_VERSIONLESS = "Model ID without version"


def invoke_url(region: str, model_id: str) -> str:
    """URL InvokeModel для региона и ID модели."""
    return f"https://bedrock-runtime.{region}.amazonaws.com/model/{model_id}/invoke"


class EndpointResolver:
    """Резолвер стратегий вызова.

    Список для модели зависит только от её описания и настроек,
    поэтому вычисляется один раз и кешируется по ключу модели.

    Args:
        home_region: Домашний регион (AWS__REGION).
        routing: Регионы и префикс inference profile из config.yaml.
    """

    def __init__(self, home_region: str, routing: RoutingConfig | None = None) -> None:
        self._home_region = home_region
        self._routing = routing or RoutingConfig()
        self._cache: dict[str, tuple[EndpointCandidate, ...]] = {}

    def resolve(self, descriptor: ModelDescriptor) -> tuple[EndpointCandidate, ...]:
        """Получить кандидатов для модели в порядке попыток.

        Args:
            descriptor: Модель из каталога.

        Returns:
            Кортеж кандидатов (без дубликатов URL).
        """
        cached = self._cache.get(descriptor.key)
        if cached is not None:
            return cached

        candidates = self._build(descriptor)
        self._cache[descriptor.key] = candidates
        logger.debug(
            "Стратегии для %s: %s",
            descriptor.key,
            ", ".join(c.label for c in candidates),
        )
        return candidates

    def _build(self, descriptor: ModelDescriptor) -> tuple[EndpointCandidate, ...]:
        routing = self._routing
        model_id = descriptor.provider_id
        prefix = routing.cross_region_prefix

        profile_id = model_id if model_id.startswith(f"{prefix}.") else f"{prefix}.{model_id}"

        routes: list[tuple[str, str]] = [
            (invoke_url(self._home_region, model_id), LABEL_DIRECT),
            (
                invoke_url(routing.cross_region, profile_id),
                f"Cross-region inference profile ({prefix} prefix)",
            ),
        ]
        routes.extend(
            (
                invoke_url(override.region or self._home_region, override.model_id),
                override.label,
            )
            for override in descriptor.route_overrides
        )
        routes.append(
            (
                invoke_url(routing.alternate_region, model_id),
                f"Alternate region ({routing.alternate_region})",
            )
        )
        routes.append(
            (invoke_url(self._home_region, model_id.split(":", 1)[0]), LABEL_VERSIONLESS)
        )

        seen: set[str] = set()
        candidates: list[EndpointCandidate] = []
        for url, label in routes:
            if url in seen:
                continue
            seen.add(url)
            candidates.append(EndpointCandidate(url=url, label=label, order=len(candidates) + 1))
        return tuple(candidates)
