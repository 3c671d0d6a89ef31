"""Модель аккаунта.

Аккаунт создаётся при первом входе через Google. Хранит профиль,
баланс токенов и счётчик вызовов. Баланс меняется только через
AccountRepository (атомарные UPDATE), а каждое изменение записывается
в леджер (TokenTransaction).
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing_extensions import override

from bongo.db.models_base import Base

if TYPE_CHECKING:
    from bongo.db.models.transaction import TokenTransaction


class Account(Base):
    """Аккаунт пользователя.

    Attributes:
        id: Внутренний ID в нашей БД (автоинкремент).
        external_id: Subject из подтверждённой личности (Google "sub").
        email: Email из профиля Google.
        name: Отображаемое имя.
        given_name: Имя.
        family_name: Фамилия.
        picture: URL аватара.
        tokens: Баланс токенов. Никогда не бывает отрицательным.
        total_api_calls: Сколько раз списывались токены за генерацию.
        has_received_signup_bonus: Начислен ли бонус за первый вход.
        created_at: Дата первого входа.
        last_login: Дата последнего входа.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Google "sub": стабильный идентификатор, email может смениться
    external_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    given_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    family_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Бонус за первый вход начисляется отдельной транзакцией
    tokens: Mapped[int] = mapped_column(default=0, nullable=False)
    total_api_calls: Mapped[int] = mapped_column(default=0, nullable=False)

    # Флаг: гарантирует однократное начисление бонуса
    # даже при повторных быстрых входах
    has_received_signup_bonus: Mapped[bool] = mapped_column(
        default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    transactions: Mapped[list["TokenTransaction"]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (CheckConstraint("tokens >= 0", name="ck_accounts_tokens_non_negative"),)

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<Account(id={self.id}, external_id={self.external_id}, "
            f"tokens={self.tokens}, total_api_calls={self.total_api_calls})>"
        )
