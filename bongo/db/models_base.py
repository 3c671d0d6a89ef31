"""Базовый класс для всех моделей SQLAlchemy.

Только декларативная база, без побочных эффектов: тесты импортируют
модели, не загружая настройки из .env.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Базовый класс для всех моделей (Account, TokenTransaction)."""
