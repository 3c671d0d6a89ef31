"""API эндпоинты.

Этот модуль содержит FastAPI роутеры для:
- Генерации (/api/chat)
- Токенов и профиля (/api/user/*)
- Входа (/api/auth/*)
- Каталога моделей (/api/models)
- Синхронизации баланса (WS /ws)
- Health check (/health)
"""

from bongo.api.auth import router as auth_router
from bongo.api.chat import router as chat_router
from bongo.api.health import router as health_router
from bongo.api.models import router as models_router
from bongo.api.realtime import router as realtime_router
from bongo.api.user import router as user_router

__all__ = [
    "auth_router",
    "chat_router",
    "health_router",
    "models_router",
    "realtime_router",
    "user_router",
]
