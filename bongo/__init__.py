"""Bongo — шлюз генерации текста, изображений и видео с учётом токенов."""

__version__ = "0.1.0"
