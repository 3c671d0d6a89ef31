"""Каталог моделей генерации (паттерн Registry).

Каталог строится один раз из config.yaml и после этого не изменяется,
поэтому его можно безопасно читать из любых запросов одновременно.
"""

from collections.abc import Iterable

from bongo.config.yaml_config import ModelConfig, YamlConfig
from bongo.core.exceptions import ConfigurationError
from bongo.providers.ai.base import (
    GenerationCategory,
    ModelDescriptor,
    PayloadShape,
    RouteOverride,
)
from bongo.utils.logging import get_logger

logger = get_logger(__name__)


class ModelRegistry:
    """Каталог моделей.

    lookup() никогда не падает: неизвестный ключ → модель по умолчанию.
    Порядок моделей в списках = порядок добавления (порядок в config.yaml).
    """

    def __init__(self, descriptors: Iterable[ModelDescriptor], default_key: str) -> None:
        """Создать каталог.

        Args:
            descriptors: Описания моделей в порядке каталога.
            default_key: Ключ модели по умолчанию.

        Raises:
            ConfigurationError: Дубликат ключа или модель по умолчанию отсутствует.
        """
        self._models: dict[str, ModelDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in self._models:
                raise ConfigurationError(f"Дубликат модели в каталоге: {descriptor.key}")
            self._models[descriptor.key] = descriptor

        if default_key not in self._models:
            raise ConfigurationError(
                f"Модель по умолчанию '{default_key}' отсутствует в каталоге"
            )
        self._default_key = default_key

    @property
    def default(self) -> ModelDescriptor:
        """Модель по умолчанию."""
        return self._models[self._default_key]

    def lookup(self, model_key: str | None) -> ModelDescriptor:
        """Найти модель по ключу.

        Args:
            model_key: Ключ модели (None или пустая строка → модель по умолчанию).

        Returns:
            Описание модели. Для неизвестного ключа — модель по умолчанию.
        """
        if model_key and model_key in self._models:
            return self._models[model_key]

        if model_key:
            logger.warning(
                "Неизвестная модель '%s', используется %s", model_key, self._default_key
            )
        return self.default

    def contains(self, model_key: str) -> bool:
        """Есть ли модель с таким ключом."""
        return model_key in self._models

    def list_by_category(self, category: GenerationCategory) -> list[ModelDescriptor]:
        """Модели категории в порядке каталога."""
        return [m for m in self._models.values() if m.category == category]

    def categories(self) -> list[GenerationCategory]:
        """Категории, для которых в каталоге есть хотя бы одна модель."""
        present = {m.category for m in self._models.values()}
        return [c for c in GenerationCategory if c in present]

    def all(self) -> list[ModelDescriptor]:
        """Все модели в порядке каталога."""
        return list(self._models.values())

    def __len__(self) -> int:
        return len(self._models)


def _to_descriptor(key: str, config: ModelConfig) -> ModelDescriptor:
    """Преобразовать запись config.yaml в неизменяемое описание модели."""
    return ModelDescriptor(
        key=key,
        provider_id=config.model_id,
        display_name=config.display_name,
        category=config.category,
        max_output_tokens=config.max_output_tokens,
        payload_shape=config.payload_shape or PayloadShape(config.category.value),
        description=config.description,
        route_overrides=tuple(
            RouteOverride(model_id=r.model_id, label=r.label, region=r.region)
            for r in config.route_overrides
        ),
    )


def create_model_registry(config: YamlConfig) -> ModelRegistry:
    """Построить каталог моделей из YAML-конфигурации.

    Args:
        config: Загруженный config.yaml.

    Returns:
        Готовый каталог.
    """
    registry = ModelRegistry(
        (_to_descriptor(key, model) for key, model in config.models.items()),
        default_key=config.default_model,
    )
    logger.debug(
        "Каталог моделей: %d шт., по умолчанию %s", len(registry), config.default_model
    )
    return registry
