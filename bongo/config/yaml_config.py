"""Загрузчик YAML-конфигурации.

Этот модуль загружает и валидирует config.yaml — файл с настройками,
которые можно менять без изменения кода.

Содержимое config.yaml:
- Каталог моделей (идентификаторы Bedrock, категории, лимиты вывода)
- Стоимость генераций по категориям и политика при ошибке провайдера
- Регионы для стратегий вызова (маршрутизация)
- Параметры генерации изображений и видео

Если файла нет — используется встроенный каталог по умолчанию.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from bongo.config.constants import CONFIG_FILE
from bongo.providers.ai.base import GenerationCategory, PayloadShape


class RouteOverrideConfig(BaseModel):
    """Дополнительный маршрут вызова для конкретной модели.

    Добавляется в цепочку стратегий после кросс-регионального псевдонима.
    Например, для старой модели можно указать inference profile другой модели,
    которая гарантированно доступна в аккаунте.

    Пример в config.yaml:
        route_overrides:
          - model_id: us.anthropic.claude-3-5-sonnet-20241022-v2:0
            region: us-east-1
            label: "Cross-region inference profile (claude 3.5 sonnet)"
    """

    model_id: str = Field(description="ID модели или inference profile")
    region: str | None = Field(
        default=None,
        description="Регион (None = домашний регион из AWS__REGION)",
    )
    label: str = Field(description="Название стратегии для логов и ответа")


class ModelConfig(BaseModel):
    """Конфигурация одной модели генерации.

    Ключ модели в каталоге — это ключ словаря models в config.yaml.

    Пример в config.yaml:
        claude-opus-4:
          model_id: anthropic.claude-opus-4-20250514-v1:0
          display_name: "Claude Opus 4"
          category: text
          max_output_tokens: 8192
    """

    # Обязательные поля
    model_id: str = Field(description="ID модели на стороне Bedrock")
    display_name: str = Field(description="Название для отображения пользователю")
    category: GenerationCategory = Field(
        description="Категория генерации: text, image или video"
    )
    max_output_tokens: int = Field(
        gt=0,
        description="Потолок размера ответа (max_tokens зажимается до него)",
    )

    # Опциональные поля
    description: str = Field(
        default="",
        description="Описание модели для каталога",
    )
    payload_shape: PayloadShape | None = Field(
        default=None,
        description="Формат тела запроса (по умолчанию совпадает с категорией)",
    )
    route_overrides: list[RouteOverrideConfig] = Field(
        default_factory=list,
        description="Дополнительные маршруты вызова (в порядке попыток)",
    )

    @model_validator(mode="after")
    def _default_shape(self) -> "ModelConfig":
        """Подставить формат тела по категории, если он не указан явно."""
        if self.payload_shape is None:
            self.payload_shape = PayloadShape(self.category.value)
        return self


class FailurePolicy(StrEnum):
    """Что делать со списанными токенами, если все стратегии вызова упали."""

    CHARGE_ON_ATTEMPT = "charge_on_attempt"  # Токены не возвращаются
    REFUND_ON_FAILURE = "refund_on_failure"  # Токены возвращаются на баланс


class BillingConfig(BaseModel):
    """Настройки системы токенов.

    Логика работы:
    1. При первом входе пользователь получает signup_bonus токенов (один раз)
    2. Каждая генерация списывает costs[категория] токенов ДО вызова провайдера
    3. Если баланс < стоимости — генерация отклоняется, баланс не меняется
    4. Если провайдер недоступен — поведение определяет failure_policy

    Стоимость зависит только от категории, а не от конкретной модели.

    Attributes:
        costs: Стоимость генерации по категориям.
        signup_bonus: Бонус при первом входе (0 = отключён).
        failure_policy: charge_on_attempt (по умолчанию) или refund_on_failure.
    """

    costs: dict[GenerationCategory, int] = Field(
        default_factory=lambda: {
            GenerationCategory.TEXT: 1,
            GenerationCategory.IMAGE: 2,
            GenerationCategory.VIDEO: 3,
        },
        description="Стоимость генерации в токенах по категориям",
    )
    signup_bonus: int = Field(
        default=10,
        ge=0,
        description="Бонусных токенов при первом входе (0 = отключено)",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.CHARGE_ON_ATTEMPT,
        description="Возвращать ли токены при недоступности провайдера",
    )

    @field_validator("costs")
    @classmethod
    def _check_costs(
        cls, v: dict[GenerationCategory, int]
    ) -> dict[GenerationCategory, int]:
        """Стоимость задана для каждой категории и не отрицательна."""
        missing = [c.value for c in GenerationCategory if c not in v]
        if missing:
            raise ValueError(f"Не задана стоимость для категорий: {', '.join(missing)}")
        negative = [c.value for c, cost in v.items() if cost < 0]
        if negative:
            raise ValueError(f"Отрицательная стоимость: {', '.join(negative)}")
        return v

    def cost_for(self, category: GenerationCategory) -> int:
        """Получить стоимость генерации для категории.

        Args:
            category: Категория генерации.

        Returns:
            Количество токенов.
        """
        return self.costs[category]


class RoutingConfig(BaseModel):
    """Регионы для стратегий вызова.

    Порядок стратегий фиксирован (см. providers/ai/endpoints.py),
    здесь задаются только регионы и префикс inference profile.
    """

    cross_region: str = Field(
        default="us-east-1",
        description="Регион для кросс-регионального inference profile",
    )
    cross_region_prefix: str = Field(
        default="us",
        description="Префикс inference profile (us → us.<model_id>)",
    )
    alternate_region: str = Field(
        default="us-west-2",
        description="Запасной регион для прямого вызова",
    )


class ImageGenerationConfig(BaseModel):
    """Параметры генерации изображений (Nova Canvas)."""

    number_of_images: int = Field(default=1, ge=1, le=5)
    quality: str = "standard"
    cfg_scale: float = Field(default=8.0, gt=0)
    width: int = Field(default=1024, gt=0)
    height: int = Field(default=1024, gt=0)


class VideoGenerationConfig(BaseModel):
    """Параметры генерации видео (Nova Reel)."""

    duration_seconds: int = Field(default=6, gt=0)
    fps: int = Field(default=24, gt=0)
    dimension: str = "1280x720"


class GenerationConfig(BaseModel):
    """Параметры генерации медиа."""

    image: ImageGenerationConfig = ImageGenerationConfig()
    video: VideoGenerationConfig = VideoGenerationConfig()


def _default_models() -> dict[str, dict[str, Any]]:
    """Встроенный каталог моделей (используется без config.yaml)."""
    return {
        "claude-opus-4": {
            "model_id": "anthropic.claude-opus-4-20250514-v1:0",
            "display_name": "Claude Opus 4",
            "description": "Most capable model for complex reasoning and analysis",
            "category": "text",
            "max_output_tokens": 8192,
        },
        "claude-sonnet-4": {
            "model_id": "anthropic.claude-sonnet-4-20250514-v1:0",
            "display_name": "Claude Sonnet 4",
            "description": "Balanced performance and speed",
            "category": "text",
            "max_output_tokens": 8192,
        },
        "claude-3-7-sonnet": {
            "model_id": "anthropic.claude-3-7-sonnet-20250219-v1:0",
            "display_name": "Claude 3.7 Sonnet",
            "description": "Advanced reasoning with extended thinking",
            "category": "text",
            "max_output_tokens": 8192,
        },
        "nova-canvas": {
            "model_id": "amazon.nova-canvas-v1:0",
            "display_name": "Nova Canvas",
            "description": "Generate and edit images from text or reference images",
            "category": "image",
            "max_output_tokens": 1024,
        },
        "nova-reel": {
            "model_id": "amazon.nova-reel-v1:0",
            "display_name": "Nova Reel",
            "description": "Generate short videos from text or images",
            "category": "video",
            "max_output_tokens": 1024,
        },
    }


class YamlConfig(BaseModel):
    """Главная YAML-конфигурация.

    Загружается из config.yaml при старте приложения.
    """

    # Словарь моделей, ключ = ID модели в нашей системе.
    # Порядок ключей = порядок моделей в каталоге.
    models: dict[str, ModelConfig] = Field(default_factory=dict, validate_default=True)
    default_model: str = "claude-opus-4"
    billing: BillingConfig = BillingConfig()
    routing: RoutingConfig = RoutingConfig()
    generation: GenerationConfig = GenerationConfig()

    @field_validator("models", mode="before")
    @classmethod
    def parse_models(cls, v: dict[str, Any] | None) -> dict[str, Any]:
        """Подставить встроенный каталог, если models не указан или пустой."""
        if not v:
            return _default_models()
        return v

    @model_validator(mode="after")
    def _check_default_model(self) -> "YamlConfig":
        """Модель по умолчанию должна присутствовать в каталоге."""
        if self.default_model not in self.models:
            raise ValueError(
                f"default_model '{self.default_model}' отсутствует в списке models"
            )
        return self

    def get_model(self, model_key: str) -> ModelConfig | None:
        """Получить конфигурацию модели по ключу.

        Args:
            model_key: Ключ модели (claude-opus-4, nova-canvas, и т.д.)

        Returns:
            ModelConfig или None если модель не найдена.
        """
        return self.models.get(model_key)


def load_yaml_config(path: Path | str = CONFIG_FILE) -> YamlConfig:
    """Загрузить и валидировать YAML-конфигурацию.

    Args:
        path: Путь к файлу конфигурации.

    Returns:
        Валидированный объект конфигурации.
        Если файла нет — конфигурация со встроенным каталогом.

    Raises:
        yaml.YAMLError: Некорректный YAML.
        pydantic.ValidationError: Некорректная конфигурация.
    """
    config_path = Path(path)

    if not config_path.exists():
        return YamlConfig()

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return YamlConfig.model_validate(data)


yaml_config = load_yaml_config()
