"""Модели запросов и ответов HTTP API.

Клиент работает с camelCase-полями (modelKey, remainingTokens),
поэтому у моделей заданы алиасы. Ответы сериализуются по алиасам.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bongo.db.models.account import Account
from bongo.providers.ai.base import GenerationCategory, ModelDescriptor


class CamelModel(BaseModel):
    """Базовая модель с camelCase-алиасами."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ГЕНЕРАЦИЯ
# =============================================================================


class ChatRequest(CamelModel):
    """Тело POST /api/chat."""

    message: str | None = None
    model_key: str | None = None
    max_tokens: int = Field(default=1000, ge=1)
    category: GenerationCategory = GenerationCategory.TEXT
    image_data: str | None = None
    charge_id: int | None = None


class ChatResponse(CamelModel):
    """Ответ POST /api/chat.

    category — категория модели, которая выполнила генерацию, и категория,
    за которую списаны токены. Может отличаться от category запроса:
    известный modelKey определяет категорию сам.
    """

    response: str
    model: str
    tokens: dict[str, Any]
    approach: str
    image_url: str | None = None
    category: GenerationCategory
    remaining_tokens: int
    total_api_calls: int
    charge_id: int


# =============================================================================
# ТОКЕНЫ
# =============================================================================


class TokenCheckRequest(CamelModel):
    """Тело POST /api/user/check-tokens."""

    category: GenerationCategory
    model: str | None = None


class TokenCheckResponse(CamelModel):
    """Ответ POST /api/user/check-tokens."""

    has_enough_tokens: bool
    required: int
    available: int


class ConsumeRequest(CamelModel):
    """Тело POST /api/user/consume-tokens."""

    category: GenerationCategory
    model: str
    endpoint: str = "/api/chat"
    request_id: str | None = Field(default=None, max_length=128)


class ConsumeResponse(CamelModel):
    """Ответ POST /api/user/consume-tokens.

    При отказе заполнено только message, success = False.
    """

    success: bool
    remaining_tokens: int | None = None
    total_api_calls: int | None = None
    charge_id: int | None = None
    message: str | None = None


# =============================================================================
# ПОЛЬЗОВАТЕЛЬ И ВХОД
# =============================================================================


class UserOut(BaseModel):
    """Профиль пользователя в формате клиента."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    google_id: str = Field(alias="googleId")
    name: str | None = None
    email: str | None = None
    picture: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    tokens: int
    total_api_calls: int = Field(alias="totalApiCalls")
    has_received_signup_bonus: bool = Field(alias="hasReceivedSignupBonus")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    last_login: datetime | None = Field(default=None, alias="lastLogin")

    @classmethod
    def from_account(cls, account: Account) -> "UserOut":
        """Собрать профиль из аккаунта."""
        return cls(
            id=str(account.id),
            google_id=account.external_id,
            name=account.name,
            email=account.email,
            picture=account.picture,
            given_name=account.given_name,
            family_name=account.family_name,
            tokens=account.tokens,
            total_api_calls=account.total_api_calls,
            has_received_signup_bonus=account.has_received_signup_bonus,
            created_at=account.created_at,
            last_login=account.last_login,
        )


class ProfileResponse(BaseModel):
    """Ответ GET /api/user/profile и POST /api/auth/verify-token."""

    success: bool = True
    user: UserOut


class GoogleLoginRequest(BaseModel):
    """Тело POST /api/auth/google-login."""

    credential: str = Field(min_length=1)


class LoginResponse(BaseModel):
    """Ответ POST /api/auth/google-login."""

    success: bool = True
    user: UserOut
    token: str


class VerifyTokenRequest(BaseModel):
    """Тело POST /api/auth/verify-token."""

    token: str


# =============================================================================
# КАТАЛОГ МОДЕЛЕЙ
# =============================================================================


class ModelOut(CamelModel):
    """Модель в каталоге."""

    key: str
    name: str
    category: GenerationCategory
    description: str
    max_output_tokens: int

    @classmethod
    def from_descriptor(cls, descriptor: ModelDescriptor) -> "ModelOut":
        """Собрать запись каталога из дескриптора."""
        return cls(
            key=descriptor.key,
            name=descriptor.display_name,
            category=descriptor.category,
            description=descriptor.description,
            max_output_tokens=descriptor.max_output_tokens,
        )


class ModelsResponse(CamelModel):
    """Ответ GET /api/models."""

    models: list[ModelOut]
    categories: list[GenerationCategory]
    default_model: str
