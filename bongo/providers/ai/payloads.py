"""Сборка тела запроса к Bedrock.

Сборщик ветвится только по PayloadShape модели:
- text  — Anthropic Messages API (один ход пользователя)
- image — Nova Canvas (TEXT_IMAGE или IMAGE_VARIATION)
- video — Nova Reel (TEXT_TO_VIDEO или IMAGE_TO_VIDEO)

Побочных эффектов нет, кроме чтения генератора случайных чисел для seed.
"""

import random
from typing import Any

from bongo.config.yaml_config import GenerationConfig
from bongo.core.exceptions import UnknownPayloadShapeError
from bongo.providers.ai.base import (
    GenerationRequest,
    ModelDescriptor,
    PayloadShape,
    ReferenceMedia,
)

ANTHROPIC_VERSION = "bedrock-2023-05-31"

# Seed берётся из [0, 2^31 - 1)
SEED_UPPER_BOUND = 2_147_483_647


class PayloadBuilder:
    """Сборщик тела запроса для модели из каталога.

    Args:
        config: Параметры генерации изображений и видео.
        rng: Источник случайных чисел для seed (подменяется в тестах).
    """

    def __init__(
        self,
        config: GenerationConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or GenerationConfig()
        self._rng = rng or random.Random()

    def build(
        self, descriptor: ModelDescriptor, request: GenerationRequest
    ) -> dict[str, Any]:
        """Собрать тело запроса.

        Args:
            descriptor: Модель из каталога.
            request: Запрос пользователя.

        Returns:
            Словарь, готовый к сериализации в JSON.

        Raises:
            UnknownPayloadShapeError: У модели неизвестный формат тела.
        """
        if descriptor.payload_shape == PayloadShape.TEXT:
            return self._build_text(descriptor, request)
        if descriptor.payload_shape == PayloadShape.IMAGE:
            return self._build_image(request)
        if descriptor.payload_shape == PayloadShape.VIDEO:
            return self._build_video(request)
        raise UnknownPayloadShapeError(descriptor.key, str(descriptor.payload_shape))

    def _seed(self) -> int:
        return self._rng.randrange(SEED_UPPER_BOUND)

    def _build_text(
        self, descriptor: ModelDescriptor, request: GenerationRequest
    ) -> dict[str, Any]:
        # max_tokens не может превышать потолок модели
        max_tokens = min(request.max_tokens, descriptor.max_output_tokens)
        return {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }

    def _build_image(self, request: GenerationRequest) -> dict[str, Any]:
        image = self._config.image
        payload: dict[str, Any]

        if request.media is not None:
            params: dict[str, Any] = {"images": [request.media.data]}
            if request.prompt:
                params["text"] = request.prompt
            payload = {"taskType": "IMAGE_VARIATION", "imageVariationParams": params}
        else:
            payload = {
                "taskType": "TEXT_IMAGE",
                "textToImageParams": {"text": request.prompt},
            }

        payload["imageGenerationConfig"] = {
            "numberOfImages": image.number_of_images,
            "quality": image.quality,
            "cfgScale": image.cfg_scale,
            "height": image.height,
            "width": image.width,
            "seed": self._seed(),
        }
        return payload

    def _build_video(self, request: GenerationRequest) -> dict[str, Any]:
        video = self._config.video
        params: dict[str, Any] = {"text": request.prompt}

        if request.media is not None:
            params["images"] = [_video_image(request.media)]
            task_type = "IMAGE_TO_VIDEO"
        else:
            task_type = "TEXT_TO_VIDEO"

        return {
            "taskType": task_type,
            "textToVideoParams": params,
            "videoGenerationConfig": {
                "durationSeconds": video.duration_seconds,
                "fps": video.fps,
                "dimension": video.dimension,
                "seed": self._seed(),
            },
        }


def _video_image(media: ReferenceMedia) -> dict[str, Any]:
    """Стартовый кадр Nova Reel: формат берётся из MIME-типа."""
    image_format = media.mime_type.removeprefix("image/")
    if image_format == "jpg":
        image_format = "jpeg"
    return {"format": image_format, "source": {"bytes": media.data}}
