"""Базовые типы конвейера генерации.

Этот модуль определяет структуры данных, которыми обмениваются части
конвейера (каталог → сборщик тела → стратегии вызова → исполнитель →
нормализатор), и абстрактный интерфейс исполнителя вызовов.

Паттерн: Adapter (GoF) — исполнитель скрывает детали HTTP API провайдера.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from bongo.core.exceptions import GenerationRequestError


class GenerationCategory(StrEnum):
    """Категория генерации.

    Определяет стоимость в токенах и группу моделей в каталоге.
    """

    # Текст: Claude (Anthropic Messages API)
    TEXT = "text"

    # Изображения: Nova Canvas
    IMAGE = "image"

    # Видео: Nova Reel
    VIDEO = "video"


class PayloadShape(StrEnum):
    """Формат тела запроса к провайдеру.

    Сборщик тела и нормализатор ответа ветвятся ТОЛЬКО по этому полю,
    а не по ключу модели.
    """

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class RouteOverride:
    """Дополнительный маршрут вызова, привязанный к модели."""

    model_id: str
    label: str
    region: str | None = None


@dataclass(frozen=True)
class ModelDescriptor:
    """Описание модели из каталога.

    Создаётся один раз при старте и не изменяется.

    Attributes:
        key: Ключ модели в нашей системе (claude-opus-4, nova-canvas).
        provider_id: ID модели на стороне Bedrock.
        display_name: Название для пользователя.
        category: Категория генерации.
        max_output_tokens: Потолок размера ответа.
        payload_shape: Формат тела запроса.
        description: Описание для каталога.
        route_overrides: Дополнительные маршруты вызова (в порядке попыток).
    """

    key: str
    provider_id: str
    display_name: str
    category: GenerationCategory
    max_output_tokens: int
    payload_shape: PayloadShape
    description: str = ""
    route_overrides: tuple[RouteOverride, ...] = ()


@dataclass(frozen=True)
class ReferenceMedia:
    """Референсное изображение из запроса пользователя.

    Attributes:
        data: Содержимое в base64 (без префикса data URI).
        mime_type: Заявленный MIME-тип (image/png, image/jpeg).
    """

    data: str
    mime_type: str = "image/png"

    @classmethod
    def from_data_uri(cls, value: str) -> "ReferenceMedia":
        """Разобрать data URI или «голый» base64.

        "data:image/jpeg;base64,AAAA" → ReferenceMedia("AAAA", "image/jpeg").

        Args:
            value: Строка из поля imageData.

        Returns:
            ReferenceMedia с base64 без префикса.

        Raises:
            GenerationRequestError: Строка не является корректным base64.
        """
        mime_type = "image/png"
        data = value.strip()

        if data.startswith("data:"):
            header, sep, data = data.partition(",")
            if not sep:
                raise GenerationRequestError("Invalid image data")
            declared = header.removeprefix("data:").split(";", 1)[0]
            if declared:
                mime_type = declared

        if not data:
            raise GenerationRequestError("Invalid image data")

        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise GenerationRequestError("Invalid image data") from e

        return cls(data=data, mime_type=mime_type)


@dataclass
class GenerationRequest:
    """Запрос на генерацию от пользователя.

    Attributes:
        prompt: Текст запроса (может быть пустым, если есть изображение).
        media: Референсное изображение (опционально).
        model_key: Ключ модели (None или неизвестный → модель по умолчанию).
        max_tokens: Запрошенный размер ответа (зажимается до потолка модели).
        category: Категория генерации.
    """

    prompt: str = ""
    media: ReferenceMedia | None = None
    model_key: str | None = None
    max_tokens: int = 1000
    category: GenerationCategory = GenerationCategory.TEXT

    @property
    def has_media(self) -> bool:
        """Есть ли референсное изображение."""
        return self.media is not None


@dataclass(frozen=True)
class EndpointCandidate:
    """Одна стратегия вызова: URL и название для логов."""

    url: str
    label: str
    order: int


@dataclass
class InvocationOutcome:
    """Результат одной попытки вызова.

    Attributes:
        candidate: Стратегия, которой принадлежит попытка.
        success: Успешна ли попытка.
        status_code: HTTP-статус (None при сетевой ошибке или таймауте).
        result: Разобранный ответ (только при успехе).
        detail: Описание ошибки (только при неудаче).
        elapsed: Длительность попытки в секундах.
    """

    candidate: EndpointCandidate
    success: bool
    status_code: int | None = None
    result: Any = None
    detail: str = ""
    elapsed: float = 0.0


@dataclass
class NormalizedResult:
    """Единый результат генерации для всех форматов ответа.

    Attributes:
        text: Текст ответа или сообщение о готовности медиа.
        media_url: data URI сгенерированного изображения (если есть).
        usage: Счётчики использования от провайдера (или {}).
        approach: Название сработавшей стратегии вызова.
    """

    text: str = ""
    media_url: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    approach: str = ""


class BaseInvoker(ABC):
    """Абстрактный исполнитель вызовов провайдера.

    Перебирает стратегии СТРОГО по порядку и останавливается
    на первой успешной. Повторов и задержек между попытками нет.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Название провайдера (для логов и ошибок)."""

    @abstractmethod
    async def invoke(
        self,
        model_key: str,
        payload: dict[str, Any],
        candidates: Sequence[EndpointCandidate],
        parse: Callable[[Any], Any],
    ) -> tuple[InvocationOutcome, list[InvocationOutcome]]:
        """Выполнить вызов с перебором стратегий.

        Args:
            model_key: Ключ модели (для логов и ошибок).
            payload: Готовое тело запроса (одно на все попытки).
            candidates: Стратегии вызова в порядке попыток.
            parse: Разбор успешного тела. Исключение MalformedResponseError
                считается неудачей текущей стратегии.

        Returns:
            Кортеж (успешная попытка, журнал всех попыток).

        Raises:
            AllCandidatesFailedError: Ни одна стратегия не сработала.
        """

    async def close(self) -> None:  # noqa: B027
        """Освободить ресурсы (HTTP-клиент и т.п.)."""
