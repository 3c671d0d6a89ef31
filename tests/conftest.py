"""Общие фикстуры для всех тестов.

Этот файл содержит pytest-фикстуры, которые используются во всех тестах:
- Тестовая БД SQLite в памяти (для изоляции тестов)
- Асинхронные сессии SQLAlchemy
- Тестовый аккаунт с балансом
- Конфигурация и каталог моделей по умолчанию
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from bongo.config.yaml_config import YamlConfig
from bongo.db.models.account import Account
from bongo.db.models_base import Base
from bongo.providers.ai.registry import ModelRegistry, create_model_registry
from bongo.realtime.hub import ConnectionRegistry


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Создать тестовый движок SQLAlchemy.

    SQLite в памяти с одним общим соединением (StaticPool): все сессии
    теста видят одни и те же данные.

    Yields:
        Асинхронный движок SQLAlchemy для тестовой БД.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        pool_reset_on_return=None,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий тестовой БД."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Создать асинхронную сессию БД для теста.

    Yields:
        Асинхронная сессия для работы с тестовой БД.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_account(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Account]]:
    """Фабрика тестовых аккаунтов.

    Example:
        >>> account = await make_account(tokens=5)
    """
    counter = 0

    async def _make(tokens: int = 10, **kwargs: Any) -> Account:
        nonlocal counter
        counter += 1
        account = Account(
            external_id=kwargs.pop("external_id", f"google-sub-{counter}"),
            email=kwargs.pop("email", f"user{counter}@example.com"),
            name=kwargs.pop("name", f"Test User {counter}"),
            tokens=tokens,
            **kwargs,
        )
        async with session_factory() as session:
            session.add(account)
            await session.commit()
            await session.refresh(account)
        return account

    return _make


@pytest_asyncio.fixture
async def test_account(make_account: Callable[..., Awaitable[Account]]) -> Account:
    """Тестовый аккаунт с балансом 10 токенов."""
    return await make_account(tokens=10)


@pytest.fixture
def yaml_config() -> YamlConfig:
    """Конфигурация по умолчанию (встроенный каталог, стоимость 1/2/3)."""
    return YamlConfig()


@pytest.fixture
def model_registry(yaml_config: YamlConfig) -> ModelRegistry:
    """Каталог моделей по умолчанию."""
    return create_model_registry(yaml_config)


@pytest.fixture
def hub() -> ConnectionRegistry:
    """Реестр соединений для событий баланса."""
    return ConnectionRegistry()


class RecordingSender:
    """Соединение-заглушка: запоминает отправленные события."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> None:
        self.events.append(payload)


@pytest.fixture
def recording_sender() -> Callable[[], RecordingSender]:
    """Фабрика соединений-заглушек."""
    return RecordingSender
