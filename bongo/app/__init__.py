"""Создание и жизненный цикл FastAPI приложения."""

from bongo.app.factory import create_app
from bongo.app.lifecycle import ApplicationLifecycle

__all__ = [
    "ApplicationLifecycle",
    "create_app",
]
