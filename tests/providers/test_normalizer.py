"""Тесты для нормализатора ответов (ResponseNormalizer)."""

import pytest

from bongo.core.exceptions import MalformedResponseError
from bongo.providers.ai.normalizer import ResponseNormalizer
from bongo.providers.ai.registry import ModelRegistry


@pytest.fixture
def normalizer() -> ResponseNormalizer:
    return ResponseNormalizer()


class TestTextResponse:
    """Ответы текстовых моделей (Anthropic Messages)."""

    def test_text_and_usage(self, normalizer: ResponseNormalizer, model_registry: ModelRegistry) -> None:
        """Тест: текст из блока content, usage передаётся как есть."""
        body = {
            "content": [{"type": "text", "text": "Hi there"}],
            "usage": {"input_tokens": 3, "output_tokens": 2},
        }

        result = normalizer.normalize(model_registry.lookup("claude-opus-4"), body, "Hello")

        assert result.text == "Hi there"
        assert result.usage == {"input_tokens": 3, "output_tokens": 2}
        assert result.media_url is None

    def test_missing_usage(self, normalizer: ResponseNormalizer, model_registry: ModelRegistry) -> None:
        """Тест: без usage → пустой словарь."""
        result = normalizer.normalize(
            model_registry.lookup("claude-opus-4"), {"content": [{"text": "ok"}]}
        )

        assert result.usage == {}

    def test_skips_non_text_blocks(
        self, normalizer: ResponseNormalizer, model_registry: ModelRegistry
    ) -> None:
        """Тест: берётся первый блок с текстом."""
        body = {"content": [{"type": "thinking", "thinking": "..."}, {"type": "text", "text": "42"}]}

        result = normalizer.normalize(model_registry.lookup("claude-sonnet-4"), body)

        assert result.text == "42"

    @pytest.mark.parametrize("body", [{"content": []}, {}, ["not", "an", "object"], "text"])
    def test_malformed(
        self, normalizer: ResponseNormalizer, model_registry: ModelRegistry, body: object
    ) -> None:
        """Тест: из ответа нельзя извлечь текст → MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            normalizer.normalize(model_registry.lookup("claude-opus-4"), body)


class TestMediaResponse:
    """Ответы Nova Canvas и Nova Reel."""

    def test_image(self, normalizer: ResponseNormalizer, model_registry: ModelRegistry) -> None:
        """Тест: первое изображение → data URI PNG, сообщение с текстом запроса."""
        result = normalizer.normalize(
            model_registry.lookup("nova-canvas"), {"images": ["QUJD", "REVG"]}, "a cat"
        )

        assert result.media_url == "data:image/png;base64,QUJD"
        assert result.text == "Generated image: a cat"

    def test_image_without_images(
        self, normalizer: ResponseNormalizer, model_registry: ModelRegistry
    ) -> None:
        """Тест: нет поля images → сообщение без изображения (не ошибка)."""
        result = normalizer.normalize(model_registry.lookup("nova-canvas"), {}, "a cat")

        assert result.media_url is None
        assert result.text == "Image generated successfully"

    def test_video(self, normalizer: ResponseNormalizer, model_registry: ModelRegistry) -> None:
        """Тест: есть video → сообщение с текстом запроса."""
        result = normalizer.normalize(
            model_registry.lookup("nova-reel"), {"video": "s3://bucket/out.mp4"}, "waves"
        )

        assert result.text == "Video generated successfully: waves"

    def test_video_without_payload(
        self, normalizer: ResponseNormalizer, model_registry: ModelRegistry
    ) -> None:
        """Тест: ответ без video → общее сообщение."""
        result = normalizer.normalize(model_registry.lookup("nova-reel"), {"invocationArn": "arn"})

        assert result.text == "Video generated successfully"
