"""Приведение ответов Bedrock к единому виду.

У каждого формата свой успешный ответ:
- text  (Anthropic): {"content": [{"type": "text", "text": "..."}], "usage": {...}}
- image (Nova Canvas): {"images": ["<base64>"], ...}
- video (Nova Reel): {"video": ...}

Необязательные поля могут отсутствовать — это не ошибка.
Ошибкой (MalformedResponseError) считается только ответ, из которого
нельзя извлечь результат: не объект JSON или текстовый ответ без текста.
"""

from typing import Any

from bongo.core.exceptions import MalformedResponseError
from bongo.providers.ai.base import ModelDescriptor, NormalizedResult, PayloadShape


class ResponseNormalizer:
    """Нормализатор успешных ответов провайдера."""

    def normalize(
        self, descriptor: ModelDescriptor, body: Any, prompt: str = ""
    ) -> NormalizedResult:
        """Привести ответ к NormalizedResult.

        Args:
            descriptor: Модель, которая ответила.
            body: Разобранное JSON-тело успешного ответа.
            prompt: Текст запроса (попадает в сообщение для медиа).

        Returns:
            Нормализованный результат (approach заполняет вызывающий).

        Raises:
            MalformedResponseError: Тело нельзя разобрать.
        """
        if not isinstance(body, dict):
            raise MalformedResponseError(
                f"expected JSON object, got {type(body).__name__}",
                model_key=descriptor.key,
            )

        usage = body.get("usage")
        if not isinstance(usage, dict):
            usage = {}

        if descriptor.payload_shape == PayloadShape.TEXT:
            return NormalizedResult(text=self._extract_text(descriptor, body), usage=usage)

        if descriptor.payload_shape == PayloadShape.IMAGE:
            images = body.get("images")
            if isinstance(images, list) and images and isinstance(images[0], str):
                return NormalizedResult(
                    text=f"Generated image: {prompt}",
                    media_url=f"data:image/png;base64,{images[0]}",
                    usage=usage,
                )
            return NormalizedResult(text="Image generated successfully", usage=usage)

        if descriptor.payload_shape == PayloadShape.VIDEO:
            if body.get("video"):
                return NormalizedResult(
                    text=f"Video generated successfully: {prompt}", usage=usage
                )
            return NormalizedResult(text="Video generated successfully", usage=usage)

        raise MalformedResponseError(
            f"no normalizer for payload shape '{descriptor.payload_shape}'",
            model_key=descriptor.key,
        )

    def _extract_text(self, descriptor: ModelDescriptor, body: dict[str, Any]) -> str:
        """Первый текстовый блок из content.

        Ответ Anthropic может содержать несколько блоков (например,
        thinking перед text), поэтому берём первый блок с полем text.
        """
        content = body.get("content")
        if isinstance(content, list):
            for block in content:
                if isinstance(block, dict) and isinstance(block.get("text"), str):
                    return block["text"]

        raise MalformedResponseError(
            "response has no text content block", model_key=descriptor.key
        )
